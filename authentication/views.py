from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.views import TokenObtainPairView

from .serializers import UserDetailSerializer


class DepartmentTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    JWT pair that also carries the user's department claim
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['department'] = user.department
        token['email'] = user.email
        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = UserDetailSerializer(self.user).data
        return data


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = DepartmentTokenObtainPairSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def current_user(request):
    """Current user details plus the operations they are allowed to run"""
    return Response(UserDetailSerializer(request.user).data)
