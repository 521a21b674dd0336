"""
Authentication Request Serializers
"""
from rest_framework import serializers

from .constants import SUPPORTED_OAUTH_PROVIDERS


class SignInSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages={
        'required': 'Email is required',
        'blank': 'Email is required',
        'invalid': 'Please enter a valid email address',
    })
    password = serializers.CharField(
        trim_whitespace=False,
        error_messages={'required': 'Password is required', 'blank': 'Password is required'},
    )

    def validate_email(self, value):
        return value.strip().lower()


class SignUpSerializer(SignInSerializer):
    password = serializers.CharField(
        min_length=8,
        trim_whitespace=False,
        error_messages={
            'required': 'Password is required',
            'blank': 'Password is required',
            'min_length': 'Password must be at least 8 characters',
        },
    )
    full_name = serializers.CharField(required=False, allow_blank=True, max_length=200)


class OAuthSerializer(serializers.Serializer):
    provider = serializers.ChoiceField(
        choices=list(SUPPORTED_OAUTH_PROVIDERS),
        default=SUPPORTED_OAUTH_PROVIDERS[0],
    )


class RefreshSerializer(serializers.Serializer):
    refresh_token = serializers.CharField(error_messages={
        'required': 'Refresh token required',
        'blank': 'Refresh token required',
    })
