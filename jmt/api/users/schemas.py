# jmt/api/users/schemas.py
from marshmallow import Schema, fields, EXCLUDE


class ProfileUpdateSchema(Schema):
    """PATCH /api/users/me multipart 폼의 텍스트 필드. 사진은 request.files의 'photo'"""
    class Meta:
        unknown = EXCLUDE

    display_name = fields.Str(required=True, error_messages={"required": "이름을 입력해주세요."})
    remove_photo = fields.Bool(load_default=False)


class UserPublicResponseSchema(Schema):
    """다른 사용자에게 보여지는 공개 프로필"""
    uid = fields.Str(required=True)
    displayName = fields.Str(required=True)
    photoURL = fields.Str(allow_none=True)
    createdAt = fields.DateTime()
    memoryCount = fields.Int(dump_default=0)
