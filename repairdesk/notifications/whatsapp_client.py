"""WhatsApp Business Cloud API client (Graph API)"""
import logging
from typing import Any, Dict, List, Optional

import requests

from repairdesk.core.utils import get_setting, get_bool_setting
from .whatsapp_templates import format_phone_number

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = 'https://graph.facebook.com'


class WhatsAppBusinessClient:

    def __init__(self, access_token: Optional[str] = None, phone_number_id: Optional[str] = None,
                 api_version: Optional[str] = None, timeout: Optional[int] = None,
                 enabled: Optional[bool] = None, base_url: str = GRAPH_BASE_URL):
        self.access_token = access_token if access_token is not None else get_setting('whatsapp_access_token', '')
        self.phone_number_id = (phone_number_id if phone_number_id is not None
                                else get_setting('whatsapp_phone_number_id', ''))
        self.api_version = api_version or get_setting('whatsapp_api_version', 'v23.0')
        self.timeout = int(timeout or get_setting('whatsapp_timeout', 30))
        self.enabled = enabled if enabled is not None else get_bool_setting('whatsapp_enabled', False)
        self.base_url = base_url.rstrip('/')

    @property
    def is_configured(self) -> bool:
        return bool(self.enabled and self.access_token and self.phone_number_id)

    @property
    def messages_url(self) -> str:
        return f'{self.base_url}/{self.api_version}/{self.phone_number_id}/messages'

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.access_token}',
            'Content-Type': 'application/json',
        }

    @staticmethod
    def recipient(phone_number: str) -> str:
        """Graph API expects digits only, with the country code"""
        return format_phone_number(phone_number).lstrip('+')

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.is_configured:
            logger.warning("WhatsApp message skipped: WhatsApp Business API not configured")
            return {'success': False, 'error': 'WhatsApp Business API nije konfigurisan.'}

        try:
            response = requests.post(self.messages_url, json=payload, headers=self._headers(), timeout=self.timeout)
            data = response.json() if response.content else {}
        except requests.Timeout:
            logger.error(f"WhatsApp message to {payload.get('to')} timed out after {self.timeout}s")
            return {'success': False, 'error': 'Isteklo vreme za slanje WhatsApp poruke.'}
        except (requests.RequestException, ValueError) as e:
            logger.error(f"WhatsApp message to {payload.get('to')} failed: {str(e)}")
            return {'success': False, 'error': str(e)}

        if response.ok:
            messages = data.get('messages') or []
            message_id = messages[0].get('id') if messages else None
            if message_id:
                logger.info(f"WhatsApp {payload['type']} message sent to {payload['to']} (id={message_id})")
                return {'success': True, 'message_id': message_id}
            return {'success': False, 'error': 'Odgovor bez ID-a poruke.'}

        fb_error = data.get('error') or {}
        if fb_error:
            error = f"Facebook API Error: {fb_error.get('message')} (Code: {fb_error.get('code')})"
        else:
            error = f'HTTP {response.status_code}: {response.reason}'
        logger.error(f"WhatsApp message to {payload['to']} rejected: {error}")
        return {'success': False, 'error': error}

    def send_text(self, phone_number: str, message: str, preview_url: bool = False) -> Dict[str, Any]:
        return self._post({
            'messaging_product': 'whatsapp',
            'recipient_type': 'individual',
            'to': self.recipient(phone_number),
            'type': 'text',
            'text': {'body': message, 'preview_url': preview_url},
        })

    def send_template(self, phone_number: str, template_name: str, language_code: str = 'en_US',
                      components: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """Send a template pre-approved in the WhatsApp Business Manager"""
        return self._post({
            'messaging_product': 'whatsapp',
            'recipient_type': 'individual',
            'to': self.recipient(phone_number),
            'type': 'template',
            'template': {
                'name': template_name,
                'language': {'code': language_code},
                'components': components or [],
            },
        })

    def test_connection(self) -> Dict[str, Any]:
        if not self.is_configured:
            return {'success': False, 'message': 'WhatsApp Business API nije konfigurisan.'}
        url = f'{self.base_url}/{self.api_version}/{self.phone_number_id}'
        try:
            response = requests.get(url, headers=self._headers(), timeout=self.timeout)
            data = response.json() if response.content else {}
        except (requests.RequestException, ValueError) as e:
            return {'success': False, 'message': str(e)}
        if response.ok:
            return {'success': True, 'message': 'WhatsApp Business API konekcija uspešna.', 'details': data}
        return {'success': False, 'message': f'Test konekcije neuspešan: HTTP {response.status_code}'}
