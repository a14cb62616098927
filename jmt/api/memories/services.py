# jmt/api/memories/services.py
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from werkzeug.utils import secure_filename

from jmt.models.memory import Memory
from jmt.models.user import User
from jmt.services.feed_synchronizer import FeedSynchronizer, MEMORIES
from jmt.services.record_store import DocumentNotFoundError
from jmt.services.storage_service import StorageService
from jmt.utils.datetime_utils import DateTimeUtils

HASHTAG_PATTERN = re.compile(r'#[\w가-힣]+')


@dataclass
class ImageUpload:
    """업로드 요청으로 받은 파일 하나."""
    filename: str
    data: bytes
    content_type: str

    @property
    def is_image(self) -> bool:
        return (self.content_type or '').startswith('image/')


def extract_hashtags(*texts: str) -> List[str]:
    """'#회식 #팀워크' 형태에서 '#'을 뗀 태그 목록을 추출합니다. 중복은 처음 나온 것만 남깁니다."""
    tags = []
    for text in texts:
        tags.extend(tag[1:] for tag in HASHTAG_PATTERN.findall(text or ''))
    return list(dict.fromkeys(tags))


def only_images(files: Iterable[ImageUpload]) -> List[ImageUpload]:
    """이미지가 아닌 파일은 조용히 제외합니다."""
    return [f for f in files if f.is_image]


class MemoryService:
    """
    추억 작성/수정/삭제/좋아요를 담당하는 변경 핸들러 모음.

    각 핸들러는 로컬 조건(내용, 작성자 일치, 이미지 개수)을 먼저 검사한 뒤 정확히 한 번 씁니다.
    - 작성/수정/삭제: 쓰기 성공 후 on_mutation 콜백으로 피드 전체를 다시 읽습니다.
    - 좋아요: 로컬 피드를 먼저 고치고(낙관적 갱신), 쓰기에 실패하면 되돌립니다.
    """

    def __init__(self, record_store, storage_service: StorageService, feed: FeedSynchronizer,
                 on_mutation: Optional[Callable[[], Any]] = None,
                 max_images: int = 5, max_content_length: int = 500):
        self.record_store = record_store
        self.storage_service = storage_service
        self.feed = feed
        self.on_mutation = on_mutation or feed.refresh
        self.max_images = max_images
        self.max_content_length = max_content_length

    # --- 검증 ---
    def _validate_content(self, content: str) -> str:
        content = (content or '').strip()
        if not content:
            raise ValueError("내용을 입력해주세요.")
        if len(content) > self.max_content_length:
            raise ValueError(f"내용은 {self.max_content_length}자 이하로 입력해주세요.")
        return content

    def _check_image_count(self, count: int):
        if count > self.max_images:
            raise ValueError(f"이미지는 최대 {self.max_images}개까지 업로드할 수 있습니다.")

    def _get_owned_memory(self, user: User, memory_id: str) -> Memory:
        data = self.record_store.get_document(MEMORIES, memory_id)
        if not data:
            raise DocumentNotFoundError(MEMORIES, memory_id)
        memory = Memory.from_dict(data)
        if memory.user_id != user.uid:
            raise PermissionError("작성자만 수정하거나 삭제할 수 있습니다.")
        return memory

    def upload_images(self, files: List[ImageUpload]) -> List[str]:
        """
        파일을 하나씩 순서대로 업로드하고 공개 URL 목록을 반환합니다.
        중간에 실패하면 예외가 그대로 전파되고, 이미 올라간 파일은 정리하지 않습니다.
        """
        urls = []
        for image in files:
            timestamp = DateTimeUtils.to_timestamp_ms(DateTimeUtils.now())
            path = f"memories/{timestamp}_{secure_filename(image.filename) or 'image'}"
            self.storage_service.upload(path, image.data, image.content_type)
            urls.append(self.storage_service.get_public_url(path))
        return urls

    # --- 작성 ---
    def create_memory(self, user: User, content: str, hashtag_text: str = '',
                      images: Iterable[ImageUpload] = ()) -> Memory:
        content = self._validate_content(content)
        files = only_images(images)
        self._check_image_count(len(files))

        try:
            image_urls = self.upload_images(files)
        except Exception as e:
            logging.error(f"이미지 업로드 실패 (user: {user.uid}): {e}", exc_info=True)
            raise

        fields = dict(user.author_fields())
        fields.update({
            'content': content,
            'hashtags': extract_hashtags(hashtag_text, content),
            'images': image_urls,
            'likes': [],
            'comments': [],
            'createdAt': DateTimeUtils.now(),
            'isEdited': False,
        })
        memory_id = self.record_store.create_document(MEMORIES, fields)
        logging.info(f"추억 생성 완료 (memory_id: {memory_id}, user: {user.uid})")

        self.on_mutation()
        fields['id'] = memory_id
        return Memory.from_dict(fields)

    # --- 수정 ---
    def edit_memory(self, user: User, memory_id: str, content: str, hashtag_text: str = '',
                    keep_images: Optional[List[str]] = None,
                    images: Iterable[ImageUpload] = ()) -> Memory:
        """
        작성자 본인만 수정할 수 있습니다.
        keep_images가 None이면 기존 이미지를 모두 유지하고, 목록이 주어지면 그 중 기존 이미지만 남깁니다.
        """
        content = self._validate_content(content)
        memory = self._get_owned_memory(user, memory_id)

        if keep_images is None:
            kept = list(memory.images)
        else:
            kept = [url for url in memory.images if url in keep_images]
        files = only_images(images)
        self._check_image_count(len(kept) + len(files))

        try:
            new_urls = self.upload_images(files)
        except Exception as e:
            logging.error(f"이미지 업로드 실패 (memory_id: {memory_id}): {e}", exc_info=True)
            raise

        edited_at = DateTimeUtils.now()
        update = {
            'content': content,
            'hashtags': extract_hashtags(hashtag_text, content),
            'images': kept + new_urls,
            'editedAt': edited_at,
            'isEdited': True,
        }
        self.record_store.update_document(MEMORIES, memory_id, update)
        logging.info(f"추억 수정 완료 (memory_id: {memory_id})")

        self.on_mutation()
        memory.content = update['content']
        memory.hashtags = update['hashtags']
        memory.images = update['images']
        memory.edited_at = edited_at
        return memory

    # --- 삭제 ---
    def delete_memory(self, user: User, memory_id: str) -> None:
        self._get_owned_memory(user, memory_id)
        self.record_store.delete_document(MEMORIES, memory_id)
        logging.info(f"추억 삭제 완료 (memory_id: {memory_id})")
        self.on_mutation()

    # --- 좋아요 ---
    def toggle_like(self, user: User, memory_id: str) -> Dict[str, Any]:
        """
        좋아요를 누르거나 취소합니다.
        로컬 피드를 먼저 갱신한 뒤 쓰고, 쓰기가 실패하면 로컬 상태를 원래대로 되돌립니다.

        :return: {'isLiked', 'likeCount'} - 현재 로컬 피드 기준 값
        """
        self.feed.load()
        liked = self.feed.toggle_like(memory_id, user.uid)
        if liked is None:
            raise DocumentNotFoundError(MEMORIES, memory_id)

        if liked:
            write_value = self.record_store.array_union([user.uid])
        else:
            write_value = self.record_store.array_remove([user.uid])

        try:
            self.record_store.update_document(MEMORIES, memory_id, {'likes': write_value})
        except Exception as e:
            logging.error(f"좋아요 오류 (memory_id: {memory_id}, user: {user.uid}): {e}", exc_info=True)
            # 이 사용자의 변경분만 되돌립니다.
            self.feed.set_like(memory_id, user.uid, not liked)

        current = self.feed.get(memory_id)
        if current is None:
            return {'isLiked': False, 'likeCount': 0}
        return {
            'isLiked': current.is_liked_by(user.uid),
            'likeCount': current.like_count,
        }


def to_view(memory: Memory, viewer_id: Optional[str], post_number: Optional[int] = None) -> Dict[str, Any]:
    """응답 스키마에 넘길 dict. 화면에서 쓰는 파생 값(좋아요 수, 본인 여부 등)을 함께 담습니다."""
    now = DateTimeUtils.now()
    return {
        'id': memory.id,
        'userId': memory.user_id,
        'userName': memory.user_name,
        'userPhotoURL': memory.user_photo_url,
        'content': memory.content,
        'hashtags': memory.hashtags,
        'images': memory.images,
        'likes': memory.likes,
        'comments': [
            dict(comment.to_dict(),
                 createdAgo=DateTimeUtils.format_relative(comment.created_at, now),
                 isOwner=comment.user_id == viewer_id)
            for comment in memory.comments
        ],
        'createdAt': memory.created_at,
        'createdAgo': DateTimeUtils.format_relative(memory.created_at, now),
        'editedAt': memory.edited_at,
        'isEdited': memory.is_edited,
        'likeCount': memory.like_count,
        'commentCount': memory.comment_count,
        'isLiked': memory.is_liked_by(viewer_id),
        'isOwner': memory.user_id == viewer_id,
        'postNumber': post_number,
    }
