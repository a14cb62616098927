# jmt/api/lotteries/schemas.py
from marshmallow import Schema, fields, validate


class LotteryCreateSchema(Schema):
    """커피 추첨 생성 요청"""
    title = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=100),
        error_messages={"required": "추첨 제목을 입력해주세요."}
    )
    winnerCount = fields.Int(
        load_default=1,
        validate=validate.Range(min=1, error="당첨자 수는 1명 이상이어야 합니다.")
    )


class ParticipantSchema(Schema):
    id = fields.Str(required=True)
    userId = fields.Str(required=True)
    userName = fields.Str(required=True)
    userPhotoURL = fields.Str(allow_none=True)
    joinedAt = fields.DateTime()


class WinnerSchema(Schema):
    userId = fields.Str(required=True)
    userName = fields.Str()
    userPhotoURL = fields.Str(allow_none=True)


class LotteryResponseSchema(Schema):
    id = fields.Str(required=True)
    title = fields.Str(required=True)
    winnerCount = fields.Int(required=True)
    participants = fields.List(fields.Nested(ParticipantSchema))
    winners = fields.List(fields.Nested(WinnerSchema))
    isActive = fields.Bool()
    createdAt = fields.DateTime()
    participantCount = fields.Int()
    isParticipant = fields.Bool(dump_default=False)
    isWinner = fields.Bool(dump_default=False)
    canDraw = fields.Bool(dump_default=False)
