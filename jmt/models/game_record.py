# jmt/models/game_record.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Optional

from jmt.utils.datetime_utils import DateTimeUtils


@dataclass
class GameRecord:
    """
    Firestore 'spotTheDifferenceRecords' 컬렉션 문서 구조 (추가 전용).
    순위: found_count 내림차순, time(초) 오름차순.
    """
    user_name: str
    time: int
    found_count: int
    id: Optional[str] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    def rank_key(self):
        return (-self.found_count, self.time)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameRecord":
        created_at = data.get('createdAt')
        return cls(
            id=data.get('id'),
            user_name=data.get('userName') or '익명',
            time=int(data.get('time') or 0),
            # 개수 필드가 없는 예전 기록은 모두 찾은 것으로 간주합니다.
            found_count=int(data.get('foundCount', 5)),
            created_at=DateTimeUtils.to_datetime(created_at) if created_at else DateTimeUtils.now()
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'userName': self.user_name,
            'time': self.time,
            'foundCount': self.found_count,
            'createdAt': self.created_at,
        }
