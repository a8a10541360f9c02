from flask import current_app
from lifeflow import db
from lifeflow.models.user import Profile, DeviceToken
from lifeflow.models.request import BloodRequest
import firebase_admin
from firebase_admin import credentials, messaging
import json
import logging

# Configure logging
logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = 'lifeflow'


class FirebaseSender:
    """
    Sends push messages through Firebase Cloud Messaging
    """

    def __init__(self, firebase_app):
        self.firebase_app = firebase_app

    @classmethod
    def from_config(cls, config):
        service_account_json = config.get('FIREBASE_SERVICE_ACCOUNT_JSON')
        if not service_account_json:
            raise RuntimeError('Firebase service account not configured')

        try:
            firebase_app = firebase_admin.get_app(FIREBASE_APP_NAME)
        except ValueError:
            cred = credentials.Certificate(json.loads(service_account_json))
            firebase_app = firebase_admin.initialize_app(cred, name=FIREBASE_APP_NAME)
        return cls(firebase_app)

    def send(self, token, title, body, data):
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            data=data,
            token=token,
            android=messaging.AndroidConfig(
                priority='high',
                notification=messaging.AndroidNotification(
                    click_action='FLUTTER_NOTIFICATION_CLICK',
                    channel_id='blood_requests'
                )
            )
        )
        return messaging.send(message, app=self.firebase_app)


def eligible_recipients(blood_request):
    """
    Profiles that can see the request in their feed: same district and
    blood group, excluding the requester
    """
    return Profile.query.filter(
        Profile.district == blood_request.district,
        Profile.blood_group == blood_request.blood_group,
        Profile.user_id != blood_request.requester_id
    ).all()


def dispatch_request_notifications(request_id, sender=None):
    """
    Push a new-request alert to every eligible donor's registered devices

    Args:
        request_id: ID of the blood request
        sender: Object with a send(token, title, body, data) method.
                Defaults to the Firebase sender built from app config.

    Returns:
        Dictionary with overall success, a summary message and one result
        per device token. Individual send failures are recorded, not raised.
    """
    try:
        blood_request = db.session.get(BloodRequest, request_id)
        if blood_request is None:
            raise LookupError(f"Blood request {request_id} not found")

        logger.info(f"Processing notifications for request: {request_id}")

        recipients = eligible_recipients(blood_request)
        logger.info(f"Found {len(recipients)} eligible users")
        if not recipients:
            return {'success': True, 'message': 'No eligible users found for notifications', 'results': []}

        tokens = DeviceToken.query.filter(
            DeviceToken.user_id.in_([p.user_id for p in recipients])
        ).all()
        logger.info(f"Found {len(tokens)} device tokens")
        if not tokens:
            return {'success': True, 'message': 'No device tokens found for eligible users', 'results': []}

        if sender is None:
            sender = FirebaseSender.from_config(current_app.config)

        title = 'New Blood Request'
        body = f"{blood_request.blood_group} blood needed in {blood_request.district}. Help save a life!"
        data = {'requestId': str(blood_request.id), 'action': 'VIEW_REQUEST'}

        results = []
        for device_token in tokens:
            try:
                sender.send(device_token.token, title, body, data)
                results.append({'userId': device_token.user_id, 'token': device_token.token, 'success': True})
                logger.info(f"Notification sent successfully to user {device_token.user_id}")
            except Exception as e:
                logger.error(f"Failed to send notification to user {device_token.user_id}: {str(e)}")
                results.append({
                    'userId': device_token.user_id,
                    'token': device_token.token,
                    'success': False,
                    'error': str(e)
                })

        success_count = len([r for r in results if r['success']])
        logger.info(f"Sent {success_count}/{len(results)} notifications successfully")
        return {'success': True, 'message': f"Sent {success_count} notifications", 'results': results}

    except Exception as e:
        logger.error(f"Error dispatching notifications for request {request_id}: {str(e)}")
        return {'success': False, 'error': str(e)}


def register_device_token(user, token, platform='android'):
    """
    Store a push token for the user. A token already held by another
    account moves to this one.
    """
    device_token = DeviceToken.query.filter_by(token=token).first()
    if device_token is None:
        device_token = DeviceToken(user_id=user.id, token=token, platform=platform)
        db.session.add(device_token)
    else:
        device_token.user_id = user.id
        device_token.platform = platform
    db.session.commit()
    logger.info(f"Registered {platform} device token for user {user.id}")
    return device_token


def unregister_device_token(user, token):
    deleted = DeviceToken.query.filter_by(user_id=user.id, token=token).delete()
    db.session.commit()
    return deleted > 0


def is_token_registered(user, token):
    return DeviceToken.query.filter_by(user_id=user.id, token=token).first() is not None
