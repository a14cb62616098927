# jmt/models/lottery.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from jmt.utils.datetime_utils import DateTimeUtils


@dataclass
class Participant:
    """커피 추첨 참가자. Lottery 문서의 participants 배열에 내장됩니다."""
    id: str
    user_id: str
    user_name: str
    user_photo_url: Optional[str] = None
    joined_at: datetime = field(default_factory=DateTimeUtils.now)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Participant":
        joined_at = data.get('joinedAt')
        return cls(
            id=str(data.get('id')),
            user_id=data.get('userId'),
            user_name=data.get('userName') or '',
            user_photo_url=data.get('userPhotoURL'),
            joined_at=DateTimeUtils.to_datetime(joined_at) if joined_at else DateTimeUtils.now()
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'userId': self.user_id,
            'userName': self.user_name,
            'userPhotoURL': self.user_photo_url,
            'joinedAt': self.joined_at,
        }


@dataclass
class Lottery:
    """
    Firestore 'coffeeLotteries' 컬렉션 문서 구조.
    is_active는 추첨 시점에 True -> False로 단 한 번 바뀌며,
    그 이후 participants와 winners는 변경되지 않습니다.
    """
    id: str
    title: str
    winner_count: int
    participants: List[Participant] = field(default_factory=list)
    winners: List[str] = field(default_factory=list)
    is_active: bool = True
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    def has_participant(self, user_id: Optional[str]) -> bool:
        return any(p.user_id == user_id for p in self.participants)

    def has_winner(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and user_id in self.winners

    @property
    def can_draw(self) -> bool:
        return self.is_active and len(self.participants) >= self.winner_count

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lottery":
        created_at = data.get('createdAt')
        return cls(
            id=data['id'],
            title=data.get('title') or '',
            winner_count=int(data.get('winnerCount') or 1),
            participants=[Participant.from_dict(p) for p in (data.get('participants') or [])],
            winners=list(data.get('winners') or []),
            is_active=bool(data.get('isActive', False)),
            created_at=DateTimeUtils.to_datetime(created_at) if created_at else DateTimeUtils.now()
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'winnerCount': self.winner_count,
            'participants': [p.to_dict() for p in self.participants],
            'winners': list(self.winners),
            'isActive': self.is_active,
            'createdAt': self.created_at,
        }
