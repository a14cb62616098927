# jmt/api/comments/schemas.py
from marshmallow import Schema, fields, validate


class CommentCreateSchema(Schema):
    """댓글 생성을 위한 요청 데이터 유효성 검사"""
    content = fields.Str(
        required=True,
        validate=validate.Length(min=1, error="댓글 내용을 입력해주세요."),
        error_messages={"required": "댓글 내용을 입력해주세요."}
    )


class CommentResponseSchema(Schema):
    """댓글 정보 응답 스키마"""
    id = fields.Str(required=True)
    userId = fields.Str(attribute='user_id', required=True)
    userName = fields.Str(attribute='user_name', required=True)
    userPhotoURL = fields.Str(attribute='user_photo_url', allow_none=True)
    content = fields.Str(required=True)
    createdAt = fields.DateTime(attribute='created_at', required=True)
