# jmt/api/comments/services.py

import logging
import uuid
from typing import Any, Callable, Optional

from jmt.models.memory import Comment, Memory
from jmt.models.user import User
from jmt.services.feed_synchronizer import MEMORIES
from jmt.services.record_store import DocumentNotFoundError
from jmt.utils.datetime_utils import DateTimeUtils


class CommentService:
    """
    추억 문서에 내장된 댓글을 추가/삭제합니다.
    - 추가: comments 배열에 array_union으로 덧붙입니다.
    - 삭제: 해당 댓글을 뺀 배열로 comments 필드를 통째로 다시 씁니다.
    쓰기가 성공하면 on_mutation으로 피드를 다시 읽습니다.
    """
    def __init__(self, record_store, on_mutation: Optional[Callable[[], Any]] = None, max_length: int = 500):
        self.record_store = record_store
        self.on_mutation = on_mutation or (lambda: None)
        self.max_length = max_length

    def _get_memory(self, memory_id: str) -> Memory:
        data = self.record_store.get_document(MEMORIES, memory_id)
        if not data:
            raise DocumentNotFoundError(MEMORIES, memory_id)
        return Memory.from_dict(data)

    def add_comment(self, user: User, memory_id: str, content: str) -> Comment:
        content = (content or '').strip()
        if not content:
            raise ValueError("댓글 내용을 입력해주세요.")
        if len(content) > self.max_length:
            raise ValueError(f"댓글은 {self.max_length}자 이하로 입력해주세요.")

        self._get_memory(memory_id)

        created_at = DateTimeUtils.now()
        comment = Comment(
            id=uuid.uuid4().hex,
            user_id=user.uid,
            user_name=user.display_name,
            user_photo_url=user.photo_url,
            content=content,
            created_at=created_at
        )
        self.record_store.update_document(MEMORIES, memory_id, {
            'comments': self.record_store.array_union([comment.to_dict()])
        })
        logging.info(f"댓글 추가 완료 (memory_id: {memory_id}, comment_id: {comment.id})")

        self.on_mutation()
        return comment

    def delete_comment(self, user: User, memory_id: str, comment_id: str) -> None:
        """댓글 작성자 본인만 삭제할 수 있습니다."""
        memory = self._get_memory(memory_id)
        matches = [c for c in memory.comments if c.id == comment_id]
        if not matches:
            raise DocumentNotFoundError(f"{MEMORIES}/{memory_id}/comments", comment_id)
        # 예전 댓글은 밀리초 id라 다른 사람 댓글과 id가 겹칠 수 있습니다.
        target = next((c for c in matches if c.user_id == user.uid), None)
        if target is None:
            raise PermissionError("댓글 작성자만 삭제할 수 있습니다.")

        remaining = [c.to_dict() for c in memory.comments if c is not target]
        self.record_store.update_document(MEMORIES, memory_id, {'comments': remaining})
        logging.info(f"댓글 삭제 완료 (memory_id: {memory_id}, comment_id: {comment_id})")

        self.on_mutation()
