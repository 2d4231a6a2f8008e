import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from repairdesk.core.permissions import IsAdmin
from repairdesk.core.utils import create_audit_log
from .notification_service import NotificationService
from .push_service import PushService
from .serializers import (
    NotificationSerializer, PushSubscriptionSerializer, PushSubscriptionModelSerializer,
    PushMessageSerializer, SMSPreviewSerializer, SMSTestSerializer,
    WhatsAppSendSerializer, AutoReplySerializer,
)
from .sms_client import SMSMobileClient
from .sms_templates import generate_sms, SMS_MAX_LENGTH
from .whatsapp_client import WhatsAppBusinessClient
from .whatsapp_templates import (
    AUTO_REPLIES, fill_template, find_auto_reply, get_all_templates, get_template_by_id,
)

logger = logging.getLogger(__name__)


# In-app notifications

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_list(request):
    """Latest notifications of the caller"""
    try:
        limit = min(int(request.query_params.get('limit', 50)), 200)
    except ValueError:
        limit = 50
    notifications = NotificationService.get_user_notifications(request.user, limit=limit)
    if request.query_params.get('unread') in ('1', 'true'):
        notifications = [n for n in notifications if not n.is_read]
    return Response(NotificationSerializer(notifications, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_unread_count(request):
    return Response({'count': NotificationService.get_unread_count(request.user)})


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def notification_mark_read(request, pk):
    notification = NotificationService.mark_as_read(pk, request.user)
    if notification is None:
        return Response({'error': 'Obaveštenje nije pronađeno.'}, status=status.HTTP_404_NOT_FOUND)
    return Response(NotificationSerializer(notification).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_all_read(request):
    updated = NotificationService.mark_all_as_read(request.user)
    return Response({'updated': updated})


# Web push

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def push_vapid_public_key(request):
    public_key = PushService.vapid_public_key()
    if not public_key:
        return Response({'error': 'Push notifikacije nisu konfigurisane.'},
                        status=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response({'public_key': public_key})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def push_subscribe(request):
    serializer = PushSubscriptionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    subscription = PushService.save_subscription(request.user, serializer.validated_data)
    return Response(PushSubscriptionModelSerializer(subscription).data, status=status.HTTP_201_CREATED)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def push_unsubscribe(request):
    removed = PushService.remove_subscription(request.user)
    return Response({'removed': removed})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def push_test(request):
    """Send a test notification to the caller's own subscription"""
    sent = PushService.send_notification_to_user(
        request.user, 'Test obaveštenje', 'Push notifikacije rade ispravno.', data={'type': 'test'}
    )
    if not sent:
        return Response({'success': False, 'error': 'Push notifikacija nije poslata.'},
                        status=status.HTTP_400_BAD_REQUEST)
    return Response({'success': True})


@api_view(['POST'])
@permission_classes([IsAdmin])
def push_broadcast_technicians(request):
    serializer = PushMessageSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    result = PushService.send_notification_to_all_technicians(data['title'], data['body'], data=data.get('data'))
    return Response({'successful': result['successful'], 'failed': result['failed']})


# SMS

@api_view(['POST'])
@permission_classes([IsAdmin])
def sms_preview(request):
    """Render a template without sending it"""
    serializer = SMSPreviewSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    message = generate_sms(serializer.validated_data['template_type'], serializer.validated_data['data'])
    return Response({'message': message, 'length': len(message), 'max_length': SMS_MAX_LENGTH})


@api_view(['POST'])
@permission_classes([IsAdmin])
def sms_test(request):
    serializer = SMSTestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    if data.get('template_type'):
        message = generate_sms(data['template_type'], data['data'])
    else:
        message = data['message']

    result = SMSMobileClient().send(data['phone'], message)
    create_audit_log(request=request, action='create', model_name='SMS', object_id=data['phone'],
                     object_name='Test SMS', changes={'success': result['success']})
    response_status = status.HTTP_200_OK if result['success'] else status.HTTP_502_BAD_GATEWAY
    return Response({**result, 'message': message}, status=response_status)


@api_view(['GET'])
@permission_classes([IsAdmin])
def sms_status(request):
    client = SMSMobileClient()
    response = {
        'enabled': client.enabled,
        'configured': client.is_configured,
        'base_url': client.base_url,
        'gateway': client.gateway,
    }
    if client.api_key:
        response['status'] = client.check_status()
        response['credits'] = client.get_credits()
    return Response(response)


# WhatsApp

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def whatsapp_templates(request):
    return Response({
        'templates': get_all_templates(),
        'auto_replies': [
            {'key': key, 'keywords': reply['keywords']} for key, reply in AUTO_REPLIES.items()
        ],
    })


@api_view(['POST'])
@permission_classes([IsAdmin])
def whatsapp_send(request):
    serializer = WhatsAppSendSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    if data.get('template_id'):
        template = get_template_by_id(data['template_id'])
        if template is None:
            return Response({'error': f"Template '{data['template_id']}' ne postoji."},
                            status=status.HTTP_404_NOT_FOUND)
        message = fill_template(template, data['variables'])
    else:
        message = data['message']

    result = WhatsAppBusinessClient().send_text(data['phone'], message)
    response_status = status.HTTP_200_OK if result['success'] else status.HTTP_502_BAD_GATEWAY
    return Response({**result, 'message': message}, status=response_status)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def whatsapp_auto_reply(request):
    """Keyword auto-reply for an incoming message; reply is null when nothing matches"""
    serializer = AutoReplySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    reply = find_auto_reply(serializer.validated_data['message'])
    return Response({'matched': reply is not None, 'reply': reply})
