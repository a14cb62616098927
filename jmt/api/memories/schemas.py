# jmt/api/memories/schemas.py
from marshmallow import Schema, fields, validate, EXCLUDE


class MemoryFormSchema(Schema):
    """
    POST /api/memories, PATCH /api/memories/{id}
    multipart 폼의 텍스트 필드를 검사합니다. (이미지는 request.files의 'images')
    내용이 비었는지는 서비스에서 공백 제거 후 검사합니다.
    """
    class Meta:
        unknown = EXCLUDE

    content = fields.Str(required=True, error_messages={"required": "내용을 입력해주세요."})
    hashtags = fields.Str(load_default='', validate=validate.Length(max=500))


class MemoryQuerySchema(Schema):
    """GET /api/memories 쿼리 파라미터"""
    class Meta:
        unknown = EXCLUDE

    search = fields.Str(load_default='')
    user = fields.Str(load_default='all')


class CommentSchema(Schema):
    id = fields.Str(required=True)
    userId = fields.Str(required=True)
    userName = fields.Str(required=True)
    userPhotoURL = fields.Str(allow_none=True)
    content = fields.Str(required=True)
    createdAt = fields.DateTime(required=True)
    createdAgo = fields.Str()
    isOwner = fields.Bool(dump_default=False)


class MemoryResponseSchema(Schema):
    """추억 카드 하나를 그리는 데 필요한 값 (파생 값 포함)."""
    id = fields.Str(required=True)
    userId = fields.Str(required=True)
    userName = fields.Str(required=True)
    userPhotoURL = fields.Str(allow_none=True)
    content = fields.Str(required=True)
    hashtags = fields.List(fields.Str())
    images = fields.List(fields.Str())
    likes = fields.List(fields.Str())
    comments = fields.List(fields.Nested(CommentSchema))
    createdAt = fields.DateTime(required=True)
    createdAgo = fields.Str()
    editedAt = fields.DateTime(allow_none=True)
    isEdited = fields.Bool()
    likeCount = fields.Int()
    commentCount = fields.Int()
    isLiked = fields.Bool(dump_default=False)
    isOwner = fields.Bool(dump_default=False)
    postNumber = fields.Int(allow_none=True)


class LikeResponseSchema(Schema):
    isLiked = fields.Bool(required=True)
    likeCount = fields.Int(required=True)
