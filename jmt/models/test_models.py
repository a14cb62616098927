# jmt/models/test_models.py
"""
데이터클래스 모델 테스트

사용법: python -m pytest jmt/models/test_models.py -v
"""

from datetime import datetime, timezone

from jmt.models.game_record import GameRecord
from jmt.models.lottery import Lottery, Participant
from jmt.models.memory import Memory
from jmt.models.user import User, DEFAULT_DISPLAY_NAME

CREATED = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def _memory_data(**extra):
    data = {
        'id': 'm1',
        'userId': 'u1',
        'userName': 'Ann',
        'content': 'lunch #team',
        'hashtags': ['team'],
        'createdAt': CREATED,
    }
    data.update(extra)
    return data


def test_is_edited_only_when_edited_at_present():
    """isEdited는 editedAt이 있을 때만 True"""
    plain = Memory.from_dict(_memory_data())
    assert plain.is_edited is False
    assert 'editedAt' not in plain.to_dict()
    assert plain.to_dict()['isEdited'] is False

    # 저장된 isEdited 값과 관계없이 editedAt 유무로 판단합니다.
    stale_flag = Memory.from_dict(_memory_data(isEdited=True))
    assert stale_flag.is_edited is False

    edited = Memory.from_dict(_memory_data(editedAt=CREATED))
    assert edited.is_edited is True
    assert edited.to_dict()['isEdited'] is True
    assert edited.to_dict()['editedAt'] == CREATED


def test_memory_likes_are_unique():
    memory = Memory.from_dict(_memory_data(likes=['u2', 'u3', 'u2']))
    assert memory.likes == ['u2', 'u3']
    assert memory.like_count == 2
    assert memory.is_liked_by('u3')
    assert not memory.is_liked_by(None)


def test_memory_comments_round_trip_camel_case():
    memory = Memory.from_dict(_memory_data(comments=[{
        'id': '1714554000000', 'userId': 'u2', 'userName': 'Bob',
        'userPhotoURL': None, 'content': '맛있겠다', 'createdAt': CREATED,
    }]))
    assert memory.comment_count == 1
    assert memory.comments[0].user_name == 'Bob'
    assert memory.to_dict()['comments'][0]['userId'] == 'u2'


def test_user_defaults_and_author_fields():
    user = User.from_dict('u1', {'email': 'a@x.com'})
    assert user.display_name == DEFAULT_DISPLAY_NAME
    assert user.author_fields() == {'userId': 'u1', 'userName': DEFAULT_DISPLAY_NAME, 'userPhotoURL': None}


def test_lottery_can_draw():
    lottery = Lottery(id='l1', title='커피', winner_count=2, participants=[
        Participant(id='1', user_id='u1', user_name='Ann'),
    ])
    assert not lottery.can_draw
    lottery.participants.append(Participant(id='2', user_id='u2', user_name='Bob'))
    assert lottery.can_draw
    lottery.is_active = False
    assert not lottery.can_draw


def test_lottery_from_dict_reads_camel_case():
    lottery = Lottery.from_dict({
        'id': 'l1', 'title': '금요일 커피', 'winnerCount': 1, 'isActive': True,
        'participants': [{'id': '1', 'userId': 'u1', 'userName': 'Ann', 'joinedAt': CREATED}],
        'winners': [], 'createdAt': CREATED,
    })
    assert lottery.has_participant('u1')
    assert lottery.to_dict()['winnerCount'] == 1


def test_game_record_defaults():
    """foundCount가 없는 예전 기록은 5개를 모두 찾은 것으로 봅니다."""
    record = GameRecord.from_dict({'id': 'r1', 'time': 42})
    assert record.found_count == 5
    assert record.user_name == '익명'
    assert record.rank_key() == (-5, 42)
