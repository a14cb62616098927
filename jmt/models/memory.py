# jmt/models/memory.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from jmt.utils.datetime_utils import DateTimeUtils


@dataclass
class Comment:
    """
    Memory 문서 안에 배열로 내장되는 댓글.
    독립된 생명주기가 없고, 부모 문서의 comments 배열을 통째로 다시 쓰는 방식으로 추가/삭제됩니다.
    """
    id: str
    user_id: str
    user_name: str
    content: str
    user_photo_url: Optional[str] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Comment":
        created_at = data.get('createdAt')
        return cls(
            id=str(data.get('id')),
            user_id=data.get('userId'),
            user_name=data.get('userName'),
            content=data.get('content', ''),
            user_photo_url=data.get('userPhotoURL'),
            created_at=DateTimeUtils.to_datetime(created_at) if created_at else DateTimeUtils.now()
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'userId': self.user_id,
            'userName': self.user_name,
            'userPhotoURL': self.user_photo_url,
            'content': self.content,
            'createdAt': self.created_at,
        }


@dataclass
class Memory:
    """
    Firestore 'memories' 컬렉션의 문서 구조를 정의하는 데이터클래스.

    - likes: 좋아요를 누른 userId 목록 (사용자당 최대 1회)
    - is_edited: edited_at이 있을 때만 True
    """
    id: str
    user_id: str
    user_name: str
    content: str
    user_photo_url: Optional[str] = None
    hashtags: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    likes: List[str] = field(default_factory=list)
    comments: List[Comment] = field(default_factory=list)
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    edited_at: Optional[datetime] = None

    @property
    def is_edited(self) -> bool:
        return self.edited_at is not None

    @property
    def like_count(self) -> int:
        return len(self.likes)

    @property
    def comment_count(self) -> int:
        return len(self.comments)

    def is_liked_by(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and user_id in self.likes

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Memory":
        """레코드 스토어에서 받은 dict('id' 포함)로부터 Memory를 생성합니다."""
        created_at = data.get('createdAt')
        edited_at = data.get('editedAt')
        # 중복된 좋아요는 한 번만 인정합니다.
        likes = list(dict.fromkeys(data.get('likes') or []))
        return cls(
            id=data['id'],
            user_id=data.get('userId'),
            user_name=data.get('userName') or '',
            content=data.get('content') or '',
            user_photo_url=data.get('userPhotoURL'),
            hashtags=list(data.get('hashtags') or []),
            images=list(data.get('images') or []),
            likes=likes,
            comments=[Comment.from_dict(c) for c in (data.get('comments') or [])],
            created_at=DateTimeUtils.to_datetime(created_at) if created_at else DateTimeUtils.now(),
            edited_at=DateTimeUtils.to_datetime(edited_at) if edited_at else None
        )

    def to_dict(self) -> Dict[str, Any]:
        """Firestore 저장용 dict. id는 문서 ID이므로 제외합니다."""
        data = {
            'userId': self.user_id,
            'userName': self.user_name,
            'userPhotoURL': self.user_photo_url,
            'content': self.content,
            'hashtags': list(self.hashtags),
            'images': list(self.images),
            'likes': list(self.likes),
            'comments': [c.to_dict() for c in self.comments],
            'createdAt': self.created_at,
            'isEdited': self.is_edited,
        }
        if self.edited_at is not None:
            data['editedAt'] = self.edited_at
        return data
