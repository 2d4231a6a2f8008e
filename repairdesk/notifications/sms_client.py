"""
SMS Mobile API client.

Configuration comes from Django settings (SMS_MOBILE_*) and can be
overridden at runtime through the settings table.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from repairdesk.core.utils import get_setting, get_bool_setting

logger = logging.getLogger(__name__)

USER_AGENT = 'Frigo-Sistem-SMS-Mobile/1.0'
BULK_PAUSE_SECONDS = 1


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_message(response, data: Dict[str, Any]) -> str:
    return data.get('error') or data.get('message') or f"HTTP {response.status_code}: {response.reason}"


class SMSMobileClient:
    """Thin wrapper around the SMS Mobile REST API; never raises for provider errors"""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 gateway: Optional[str] = None, timeout: Optional[int] = None, enabled: Optional[bool] = None):
        self.api_key = api_key if api_key is not None else get_setting('sms_mobile_api_key', '')
        self.base_url = (base_url or get_setting('sms_mobile_base_url', 'https://api.smsmobile.rs/api/v1')).rstrip('/')
        self.gateway = gateway if gateway is not None else (get_setting('sms_mobile_gateway', '') or 'default')
        self.timeout = int(timeout or get_setting('sms_mobile_timeout', 10))
        self.enabled = enabled if enabled is not None else get_bool_setting('sms_mobile_enabled', False)

    @property
    def is_configured(self) -> bool:
        return bool(self.enabled and self.api_key)

    def _auth_headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.api_key}',
            'Accept': 'application/json',
            'User-Agent': USER_AGENT,
        }

    def _not_configured(self) -> Dict[str, Any]:
        return {
            'success': False,
            'error': 'SMS servis nije konfigurisan ili je isključen.',
            'timestamp': _timestamp(),
        }

    def send(self, phone_number: str, message: str) -> Dict[str, Any]:
        """Send one SMS. Returns {'success', 'message_id' | 'error', 'timestamp'}"""
        if not self.is_configured:
            logger.warning(f"SMS to {phone_number} skipped: SMS Mobile API not configured")
            return self._not_configured()
        if not phone_number:
            return {'success': False, 'error': 'Broj telefona nije naveden.', 'timestamp': _timestamp()}

        started = time.monotonic()
        payload = {
            'api_key': self.api_key,
            'to': phone_number,
            'text': message,
            'gateway': self.gateway,
        }
        try:
            response = requests.post(
                f'{self.base_url}/send',
                json=payload,
                headers={'Content-Type': 'application/json', 'Accept': 'application/json', 'User-Agent': USER_AGENT},
                timeout=self.timeout,
            )
            try:
                data = response.json()
            except ValueError:
                data = {}
        except requests.Timeout:
            logger.error(f"SMS to {phone_number} timed out after {self.timeout}s")
            return {'success': False, 'error': 'Isteklo vreme za slanje SMS-a.', 'timestamp': _timestamp()}
        except requests.RequestException as e:
            logger.error(f"SMS to {phone_number} failed: {str(e)}")
            return {'success': False, 'error': f'Greška mreže: {str(e)}', 'timestamp': _timestamp()}

        duration_ms = int((time.monotonic() - started) * 1000)
        if response.ok and data.get('success'):
            logger.info(f"SMS sent to {phone_number} in {duration_ms}ms (id={data.get('message_id')})")
            return {'success': True, 'message_id': data.get('message_id'), 'timestamp': _timestamp()}

        error = _error_message(response, data)
        logger.error(f"SMS to {phone_number} rejected: {error}")
        return {'success': False, 'error': error, 'timestamp': _timestamp()}

    def send_bulk(self, messages: List[Dict[str, str]]) -> List[Dict[str, Any]]:
        """
        Send messages one by one with a short pause between them.

        Each item is a dict with 'phone' and 'message'.
        """
        results = []
        for index, item in enumerate(messages):
            results.append(self.send(item['phone'], item['message']))
            if index < len(messages) - 1:
                time.sleep(BULK_PAUSE_SECONDS)
        sent = sum(1 for r in results if r['success'])
        logger.info(f"Bulk SMS finished: {sent}/{len(messages)} sent")
        return results

    def check_status(self) -> Dict[str, Any]:
        """Ping the provider status endpoint"""
        if not self.api_key:
            return {'connected': False, 'error': 'API ključ nije podešen.'}
        try:
            response = requests.get(f'{self.base_url}/status', headers=self._auth_headers(), timeout=self.timeout)
            data = response.json() if response.content else {}
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"SMS Mobile status check failed: {str(e)}")
            return {'connected': False, 'error': f'Greška konekcije: {str(e)}'}

        if response.ok:
            return {
                'connected': True,
                'api_info': {
                    'status': data.get('status', 'OK'),
                    'version': data.get('version'),
                    'credits': data.get('credits'),
                    'gateways': data.get('gateways'),
                },
            }
        return {'connected': False, 'error': f'API Status {response.status_code}: {_error_message(response, data)}'}

    def get_credits(self) -> Dict[str, Any]:
        if not self.api_key:
            return {'success': False, 'error': 'API ključ nije podešen.'}
        try:
            response = requests.get(f'{self.base_url}/credits', headers=self._auth_headers(), timeout=self.timeout)
            data = response.json() if response.content else {}
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"SMS Mobile credit lookup failed: {str(e)}")
            return {'success': False, 'error': f'Greška: {str(e)}'}

        if response.ok:
            return {'success': True, 'credits': data.get('credits')}
        return {'success': False, 'error': _error_message(response, data)}
