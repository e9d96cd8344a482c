from rest_framework.exceptions import NotAuthenticated, PermissionDenied
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer


def is_admin(user):
    return bool(user and user.is_authenticated and user.is_lifelink_admin)


def ensure_requester_or_admin(user, requisition, message="You can only manage your own requisitions"):
    """
    Raise unless the user raised this requisition or is an administrator
    Works for both API views and service-level calls
    """
    if not user or not user.is_authenticated:
        raise NotAuthenticated("Authentication required")

    if requisition.requester_id != user.pk and not user.is_lifelink_admin:
        raise PermissionDenied(message)


# REST API Token serializer
class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['user_type'] = user.user_type
        token['username'] = user.username
        return token
