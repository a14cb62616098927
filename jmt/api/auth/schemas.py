# jmt/api/auth/schemas.py
from marshmallow import Schema, fields, validate, validates_schema, ValidationError

PASSWORD_MIN_LENGTH = 6


class RegisterSchema(Schema):
    """회원가입 요청의 유효성을 검사하는 스키마"""
    email = fields.Email(required=True, error_messages={"invalid": "유효하지 않은 이메일 형식입니다."})
    password = fields.Str(
        required=True,
        validate=validate.Length(min=PASSWORD_MIN_LENGTH, error="비밀번호는 최소 6자 이상이어야 합니다.")
    )
    confirm_password = fields.Str(required=True)
    display_name = fields.Str(required=True, validate=validate.Length(min=1, max=50))

    @validates_schema
    def validate_password_match(self, data, **kwargs):
        if data.get('password') != data.get('confirm_password'):
            raise ValidationError("비밀번호가 일치하지 않습니다.", field_name='confirm_password')


class LoginSchema(Schema):
    """로그인 요청의 유효성을 검사하는 스키마"""
    email = fields.Str(required=True, validate=validate.Length(min=1))
    password = fields.Str(required=True, validate=validate.Length(min=1))


class LogoutRequestSchema(Schema):
    """로그아웃 요청의 유효성을 검사하는 스키마"""
    access_token = fields.Str(required=True)
    refresh_token = fields.Str(required=True)


class UserResponseSchema(Schema):
    """로그인한 사용자 정보 응답 스키마"""
    uid = fields.Str(required=True)
    email = fields.Str(required=True)
    displayName = fields.Str(attribute='display_name', required=True)
    photoURL = fields.Str(attribute='photo_url', allow_none=True)
    createdAt = fields.DateTime(attribute='created_at')
