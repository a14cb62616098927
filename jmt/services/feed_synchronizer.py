# jmt/services/feed_synchronizer.py
import logging
import threading
from dataclasses import replace
from typing import List, Optional

from jmt.models.memory import Memory

MEMORIES = 'memories'
ALL_USERS = 'all'


def filter_memories(memories: List[Memory], search_term: str = '', selected_user: str = ALL_USERS) -> List[Memory]:
    """
    검색어(내용/해시태그/작성자 이름, 대소문자 무시 부분 일치)와 작성자 필터를 함께 적용합니다.
    호출할 때마다 새로 계산하며 캐시나 인덱스는 두지 않습니다.
    """
    term = (search_term or '').lower()
    selected_user = selected_user or ALL_USERS

    def matches(memory: Memory) -> bool:
        matches_search = (
            term in memory.content.lower()
            or any(term in tag.lower() for tag in memory.hashtags)
            or term in memory.user_name.lower()
        )
        matches_user = selected_user == ALL_USERS or memory.user_name == selected_user
        return matches_search and matches_user

    return [memory for memory in memories if matches(memory)]


class FeedSynchronizer:
    """
    피드 화면이 보는 추억 목록을 소유합니다.

    - load(): 최초 진입 시 전체 컬렉션을 createdAt 내림차순으로 읽습니다.
    - refresh(): 다른 곳에서 변경(작성/수정/삭제/댓글/프로필)이 성공할 때마다 전체를 다시 읽습니다.
    - 읽기에 실패하면 이전 목록을 그대로 두고 로딩 상태만 끝냅니다 (오류는 로그로만 남깁니다).
    - 좋아요만은 전체 재조회 없이 set_like로 로컬 목록을 즉시 고칩니다. (사용자 한 명분만 넣고 뺍니다)
    """

    def __init__(self, record_store):
        self.record_store = record_store
        self._memories: List[Memory] = []
        self._loaded = False
        self.loading = True
        self._lock = threading.Lock()

    @property
    def memories(self) -> List[Memory]:
        with self._lock:
            return list(self._memories)

    def load(self) -> List[Memory]:
        """최초 1회만 읽고, 이후에는 보유 중인 목록을 반환합니다."""
        if not self._loaded:
            self.refresh()
        return self.memories

    def refresh(self) -> bool:
        """
        컬렉션 전체를 다시 읽어 목록을 통째로 교체합니다.

        :return: 성공 여부
        """
        try:
            records = self.record_store.fetch_collection(MEMORIES, order_by='createdAt', descending=True)
            memories = [Memory.from_dict(record) for record in records]
        except Exception as e:
            logging.error(f"메모리 가져오기 오류: {e}", exc_info=True)
            with self._lock:
                self.loading = False
            return False

        with self._lock:
            self._memories = memories
            self._loaded = True
            self.loading = False
        logging.info(f"피드 동기화 완료: {len(memories)}개")
        return True

    def get(self, memory_id: str) -> Optional[Memory]:
        with self._lock:
            return next((m for m in self._memories if m.id == memory_id), None)

    def filter(self, search_term: str = '', selected_user: str = ALL_USERS) -> List[Memory]:
        return filter_memories(self.memories, search_term, selected_user)

    def authors(self) -> List[str]:
        """작성자 필터 버튼에 쓰일 고유 작성자 이름 (피드 순서 유지)."""
        return list(dict.fromkeys(m.user_name for m in self.memories))

    def memories_with_images(self) -> List[Memory]:
        return [m for m in self.load() if m.images]

    def toggle_like(self, memory_id: str, user_id: str) -> Optional[bool]:
        """
        로컬 목록에서 user_id의 좋아요를 뒤집습니다. 읽기와 쓰기를 한 번의 잠금 안에서 합니다.

        :return: 뒤집은 뒤 좋아요 여부. 해당 추억이 목록에 없으면 None
        """
        with self._lock:
            for index, memory in enumerate(self._memories):
                if memory.id == memory_id:
                    liked = not memory.is_liked_by(user_id)
                    self._memories[index] = replace(memory, likes=_with_like(memory.likes, user_id, liked))
                    return liked
        return None

    def set_like(self, memory_id: str, user_id: str, liked: bool) -> None:
        """user_id 한 명의 좋아요만 넣거나 뺍니다. 다른 사용자의 좋아요는 건드리지 않습니다."""
        with self._lock:
            for index, memory in enumerate(self._memories):
                if memory.id == memory_id:
                    self._memories[index] = replace(memory, likes=_with_like(memory.likes, user_id, liked))
                    return


def _with_like(likes: List[str], user_id: str, liked: bool) -> List[str]:
    if liked and user_id in likes:
        return list(likes)
    others = [uid for uid in likes if uid != user_id]
    return others + [user_id] if liked else others
