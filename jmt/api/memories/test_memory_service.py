# jmt/api/memories/test_memory_service.py
"""
추억 작성/수정/삭제/좋아요 핸들러 테스트

사용법: python -m pytest jmt/api/memories/test_memory_service.py -v
"""

import threading

import pytest

from jmt.api.memories.services import ImageUpload, MemoryService, extract_hashtags
from jmt.models.user import User
from jmt.services.feed_synchronizer import FeedSynchronizer, MEMORIES

ANN = User(uid='uid-ann', email='a@x.com', display_name='Ann')
BOB = User(uid='uid-bob', email='b@x.com', display_name='Bob')


def _images(count, content_type='image/png'):
    return [ImageUpload(f"photo{i}.png", b'\x89PNG', content_type) for i in range(count)]


@pytest.fixture
def feed(record_store):
    return FeedSynchronizer(record_store)


@pytest.fixture
def service(record_store, storage, feed):
    return MemoryService(record_store, storage, feed)


def test_extract_hashtags_from_field_then_content():
    assert extract_hashtags('#회식 #팀워크', 'hello #test #회식') == ['회식', '팀워크', 'test']
    assert extract_hashtags('', 'hello #test') == ['test']
    assert extract_hashtags('', 'no tags') == []


def test_create_memory_writes_one_record_and_refreshes(service, record_store, feed):
    memory = service.create_memory(ANN, '  hello #test  ')

    assert record_store.writes == [('create', MEMORIES, memory.id)]
    stored = record_store.get_document(MEMORIES, memory.id)
    assert stored['content'] == 'hello #test'
    assert stored['hashtags'] == ['test']
    assert stored['userId'] == ANN.uid
    assert stored['userName'] == 'Ann'
    assert stored['isEdited'] is False
    assert [m.id for m in feed.memories] == [memory.id]


def test_create_memory_rejects_empty_content(service, record_store):
    with pytest.raises(ValueError, match="내용을 입력해주세요"):
        service.create_memory(ANN, '   ')
    assert record_store.writes == []


def test_five_images_accepted(service, storage):
    memory = service.create_memory(ANN, 'photos', images=_images(5))
    assert len(memory.images) == 5
    assert len(storage.files) == 5
    assert all(path.startswith('memories/') for path in storage.files)


def test_six_images_rejected_before_upload(service, storage, record_store):
    with pytest.raises(ValueError, match="최대 5개"):
        service.create_memory(ANN, 'photos', images=_images(6))
    assert storage.files == {}
    assert record_store.writes == []


def test_non_image_files_are_ignored(service):
    files = _images(1) + [ImageUpload('notes.txt', b'hello', 'text/plain')]
    memory = service.create_memory(ANN, 'mixed', images=files)
    assert len(memory.images) == 1


def test_upload_failure_aborts_create(service, storage, record_store):
    storage.fail_uploads = True
    with pytest.raises(ConnectionError):
        service.create_memory(ANN, 'photos', images=_images(2))
    assert record_store.writes == []


def test_toggle_like_twice_restores_membership(service, feed):
    memory = service.create_memory(ANN, 'like me')
    original = list(feed.get(memory.id).likes)

    first = service.toggle_like(BOB, memory.id)
    assert first == {'isLiked': True, 'likeCount': 1}

    second = service.toggle_like(BOB, memory.id)
    assert second == {'isLiked': False, 'likeCount': 0}
    assert feed.get(memory.id).likes == original


def test_toggle_like_writes_without_refetch(service, record_store):
    memory = service.create_memory(ANN, 'like me')
    record_store.writes.clear()

    service.toggle_like(BOB, memory.id)

    assert record_store.writes == [('update', MEMORIES, memory.id)]
    assert record_store.get_document(MEMORIES, memory.id)['likes'] == [BOB.uid]


def test_toggle_like_rolls_back_on_write_failure(service, record_store, feed):
    memory = service.create_memory(ANN, 'like me')
    record_store.fail_updates = True

    result = service.toggle_like(BOB, memory.id)

    assert result == {'isLiked': False, 'likeCount': 0}
    assert feed.get(memory.id).likes == []


def test_failed_like_rolls_back_only_that_user(service, record_store, feed):
    cat = User(uid='uid-cat', email='c@x.com', display_name='Cat')
    memory = service.create_memory(ANN, 'like me')
    service.toggle_like(cat, memory.id)
    record_store.fail_updates = True

    result = service.toggle_like(BOB, memory.id)

    assert result == {'isLiked': False, 'likeCount': 1}
    assert feed.get(memory.id).likes == [cat.uid]


def test_concurrent_likes_are_all_kept(service, record_store, feed):
    memory = service.create_memory(ANN, 'like me')
    users = [User(uid=f'uid-{i}', email=f'{i}@x.com', display_name=f'user{i}') for i in range(20)]
    barrier = threading.Barrier(len(users))

    def like(user):
        barrier.wait(timeout=5)
        service.toggle_like(user, memory.id)

    threads = [threading.Thread(target=like, args=(user,)) for user in users]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    expected = {user.uid for user in users}
    assert set(feed.get(memory.id).likes) == expected
    assert len(feed.get(memory.id).likes) == len(users)
    assert set(record_store.get_document(MEMORIES, memory.id)['likes']) == expected


def test_toggle_like_unknown_memory(service):
    with pytest.raises(LookupError):
        service.toggle_like(BOB, 'missing')


def test_edit_memory_sets_edited_at(service, record_store):
    memory = service.create_memory(ANN, 'before', images=_images(2))

    edited = service.edit_memory(ANN, memory.id, 'after #changed', keep_images=memory.images[:1],
                                 images=_images(1))

    stored = record_store.get_document(MEMORIES, memory.id)
    assert stored['content'] == 'after #changed'
    assert stored['hashtags'] == ['changed']
    assert stored['isEdited'] is True
    assert stored['editedAt'] is not None
    assert len(stored['images']) == 2
    assert edited.is_edited


def test_edit_memory_image_limit_counts_kept_images(service):
    memory = service.create_memory(ANN, 'before', images=_images(4))
    with pytest.raises(ValueError):
        service.edit_memory(ANN, memory.id, 'after', images=_images(2))


def test_only_author_can_edit_or_delete(service, record_store):
    memory = service.create_memory(ANN, 'mine')
    with pytest.raises(PermissionError):
        service.edit_memory(BOB, memory.id, 'hijack')
    with pytest.raises(PermissionError):
        service.delete_memory(BOB, memory.id)
    assert record_store.get_document(MEMORIES, memory.id)['content'] == 'mine'


def test_delete_memory_refreshes_feed(service, record_store, feed):
    memory = service.create_memory(ANN, 'bye')
    service.delete_memory(ANN, memory.id)
    assert record_store.get_document(MEMORIES, memory.id) is None
    assert feed.memories == []
