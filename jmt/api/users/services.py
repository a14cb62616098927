# jmt/api/users/services.py

import logging
from typing import Any, Callable, Dict, Optional

from jmt.api.auth.services import USERS
from jmt.api.memories.services import ImageUpload
from jmt.models.user import User
from jmt.services.feed_synchronizer import FeedSynchronizer
from jmt.services.storage_service import StorageService
from jmt.utils.datetime_utils import DateTimeUtils


class UserService:
    """
    프로필 조회 및 편집을 담당하는 서비스 클래스.
    편집은 공급자 프로필을 먼저 고친 뒤 'users' 문서를 고치며, 성공하면 피드를 다시 읽습니다.
    """
    def __init__(self, record_store, storage_service: StorageService, identity, feed: FeedSynchronizer,
                 on_mutation: Optional[Callable[[], Any]] = None):
        self.record_store = record_store
        self.storage_service = storage_service
        self.identity = identity
        self.feed = feed
        self.on_mutation = on_mutation or feed.refresh

    def _upload_photo(self, uid: str, photo: ImageUpload) -> str:
        path = f"profiles/{uid}_{DateTimeUtils.to_timestamp_ms(DateTimeUtils.now())}"
        self.storage_service.upload(path, photo.data, photo.content_type)
        return path

    def _discard_upload(self, uploaded_path: Optional[str]):
        if uploaded_path:
            self.storage_service.delete(uploaded_path)

    def _restore_identity(self, user: User) -> bool:
        try:
            self.identity.update_profile(
                user.uid,
                display_name=user.display_name,
                photo_url=user.photo_url,
                remove_photo=user.photo_url is None
            )
            return True
        except Exception as e:
            logging.error(f"공급자 프로필 복구 실패 (uid: {user.uid}): {e}", exc_info=True)
            return False

    def update_profile(self, user: User, display_name: str, photo: Optional[ImageUpload] = None,
                       remove_photo: bool = False) -> User:
        """
        이름과 프로필 사진을 수정합니다.

        :param photo: 새 프로필 사진 (이미지가 아니면 무시)
        :param remove_photo: True면 기존 사진을 지웁니다. photo가 함께 오면 photo가 우선합니다.
        :return: 수정된 User
        """
        display_name = (display_name or '').strip()
        if not display_name:
            raise ValueError("이름을 입력해주세요.")

        photo_url = user.photo_url
        uploaded_path = None
        if photo is not None and photo.is_image:
            uploaded_path = self._upload_photo(user.uid, photo)
            photo_url = self.storage_service.get_public_url(uploaded_path)
        elif remove_photo:
            photo_url = None

        try:
            self.identity.update_profile(
                user.uid,
                display_name=display_name,
                photo_url=photo_url,
                remove_photo=photo_url is None
            )
        except Exception:
            # 새로 올린 사진은 어디에도 연결되지 않았으므로 지웁니다.
            self._discard_upload(uploaded_path)
            raise

        try:
            self.record_store.update_document(USERS, user.uid, {
                'displayName': display_name,
                'photoURL': photo_url,
            })
        except Exception:
            # 공급자 프로필을 되돌린 경우에만 사진을 지웁니다. 되돌리지 못하면 공급자가 새 사진을 가리킵니다.
            if self._restore_identity(user):
                self._discard_upload(uploaded_path)
            raise

        logging.info(f"프로필 업데이트 완료 (uid: {user.uid})")
        self.on_mutation()
        return User(
            uid=user.uid,
            email=user.email,
            display_name=display_name,
            photo_url=photo_url,
            created_at=user.created_at
        )

    def get_user_profile(self, uid: str) -> Optional[Dict[str, Any]]:
        """공개 프로필과 피드에 올린 추억 수를 함께 반환합니다."""
        data = self.record_store.get_document(USERS, uid)
        if not data:
            return None
        user = User.from_dict(uid, data)
        memory_count = sum(1 for memory in self.feed.load() if memory.user_id == uid)
        return {
            'uid': user.uid,
            'displayName': user.display_name,
            'photoURL': user.photo_url,
            'createdAt': user.created_at,
            'memoryCount': memory_count,
        }
