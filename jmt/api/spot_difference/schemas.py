# jmt/api/spot_difference/schemas.py
from marshmallow import Schema, fields, validate

from jmt.api.spot_difference.engine import SIDES


class ClickRequestSchema(Schema):
    """이미지 클릭 위치 (이미지 크기 대비 퍼센트)"""
    side = fields.Str(required=True, validate=validate.OneOf(SIDES))
    x = fields.Float(required=True, validate=validate.Range(min=0, max=100))
    y = fields.Float(required=True, validate=validate.Range(min=0, max=100))


class DifferenceSchema(Schema):
    x = fields.Float()
    y = fields.Float()
    side = fields.Str()
    found = fields.Bool()


class MarkSchema(Schema):
    x = fields.Float()
    y = fields.Float()


class GameStateSchema(Schema):
    """
    진행 중인 게임 상태.
    아직 찾지 못한 틀린 부분의 위치는 내려주지 않습니다.
    """
    memoryId = fields.Str()
    imageUrl = fields.Str()
    foundCount = fields.Int()
    totalCount = fields.Int()
    found = fields.List(fields.Nested(DifferenceSchema))
    completed = fields.Bool()
    elapsedSeconds = fields.Int()
    elapsedTime = fields.Str()
    missMark = fields.Nested(MarkSchema, allow_none=True)


class ClickResultSchema(Schema):
    hit = fields.Bool()
    foundCount = fields.Int()
    completed = fields.Bool()
    ignored = fields.Bool()
    difference = fields.Nested(DifferenceSchema, allow_none=True)
    missMark = fields.Nested(MarkSchema, allow_none=True)
    missMarkDurationMs = fields.Int()


class GameRecordSchema(Schema):
    id = fields.Str(allow_none=True)
    rank = fields.Int()
    userName = fields.Str(attribute='user_name')
    time = fields.Int()
    formattedTime = fields.Str()
    foundCount = fields.Int(attribute='found_count')
    createdAt = fields.DateTime(attribute='created_at')
