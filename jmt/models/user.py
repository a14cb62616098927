# jmt/models/user.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any

from jmt.utils.datetime_utils import DateTimeUtils

DEFAULT_DISPLAY_NAME = '사용자'


@dataclass
class User:
    """
    Firestore 'users' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    문서 ID가 곧 Firebase Auth uid이며, displayName/photoURL만 수정 가능합니다.
    """
    uid: str
    email: str
    display_name: str
    photo_url: Optional[str] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    @classmethod
    def from_dict(cls, uid: str, data: Dict[str, Any]) -> "User":
        """Firestore 문서(dict)로부터 User 인스턴스를 생성합니다."""
        created_at = data.get('createdAt')
        return cls(
            uid=uid,
            email=data.get('email') or '',
            display_name=data.get('displayName') or DEFAULT_DISPLAY_NAME,
            photo_url=data.get('photoURL'),
            created_at=DateTimeUtils.to_datetime(created_at) if created_at else DateTimeUtils.now()
        )

    def to_dict(self) -> Dict[str, Any]:
        """uid는 문서 ID로 쓰이므로 필드에 포함하지 않습니다."""
        return {
            'email': self.email,
            'displayName': self.display_name,
            'photoURL': self.photo_url,
            'createdAt': self.created_at,
        }

    def author_fields(self) -> Dict[str, Any]:
        """추억/댓글/참가자 문서에 복사되는 작성자 정보."""
        return {
            'userId': self.uid,
            'userName': self.display_name,
            'userPhotoURL': self.photo_url,
        }
