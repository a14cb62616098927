# jmt/api/users/test_users.py
"""
프로필 편집/조회 테스트

사용법: python -m pytest jmt/api/users/test_users.py -v
"""

import io

import pytest

from jmt.api.auth.services import USERS
from jmt.api.memories.services import ImageUpload
from jmt.api.users.services import UserService
from jmt.models.user import User
from jmt.services.feed_synchronizer import FeedSynchronizer

PHOTO = ImageUpload('me.png', b'\x89PNG', 'image/png')


def _me(client, headers):
    return client.get('/api/auth/me', headers=headers).get_json()


def test_update_display_name_and_photo(client, auth_headers, record_store, identity, storage):
    uid = _me(client, auth_headers)['uid']

    response = client.patch('/api/users/me', headers=auth_headers, data={
        'display_name': '  Annie ',
        'photo': (io.BytesIO(b'\x89PNG'), 'me.png', 'image/png'),
    }, content_type='multipart/form-data')

    assert response.status_code == 200
    body = response.get_json()
    assert body['displayName'] == 'Annie'
    assert body['photoURL'].startswith('https://storage.test/profiles/')
    assert any(path.startswith(f'profiles/{uid}_') for path in storage.files)
    assert record_store.get_document(USERS, uid)['displayName'] == 'Annie'
    assert identity.accounts[uid]['photo_url'] == body['photoURL']


def test_remove_photo(client, auth_headers, record_store):
    uid = _me(client, auth_headers)['uid']
    client.patch('/api/users/me', headers=auth_headers, data={
        'display_name': 'Ann',
        'photo': (io.BytesIO(b'\x89PNG'), 'me.png', 'image/png'),
    }, content_type='multipart/form-data')

    response = client.patch('/api/users/me', headers=auth_headers, data={
        'display_name': 'Ann', 'remove_photo': 'true',
    }, content_type='multipart/form-data')

    assert response.get_json()['photoURL'] is None
    assert record_store.get_document(USERS, uid)['photoURL'] is None


def test_blank_name_rejected(client, auth_headers):
    response = client.patch('/api/users/me', headers=auth_headers, data={'display_name': '  '},
                            content_type='multipart/form-data')
    assert response.status_code == 400
    assert response.get_json()['message'] == "이름을 입력해주세요."


def test_failed_profile_write_restores_provider_and_discards_photo(client, auth_headers, record_store, storage, identity):
    uid = _me(client, auth_headers)['uid']
    record_store.fail_updates = True
    response = client.patch('/api/users/me', headers=auth_headers, data={
        'display_name': 'Annie',
        'photo': (io.BytesIO(b'\x89PNG'), 'me.png', 'image/png'),
    }, content_type='multipart/form-data')

    assert response.status_code == 500
    assert not any(path.startswith('profiles/') for path in storage.files)
    assert identity.accounts[uid]['display_name'] == 'Ann'
    assert identity.accounts[uid]['photo_url'] is None


def _service_with_user(record_store, storage, identity):
    uid = identity.sign_up('f@x.com', 'secret1', 'Fay')
    record_store.create_document(USERS, {'email': 'f@x.com', 'displayName': 'Fay', 'photoURL': None},
                                 document_id=uid)
    service = UserService(record_store, storage, identity, FeedSynchronizer(record_store))
    return service, User(uid=uid, email='f@x.com', display_name='Fay')


def test_failed_provider_update_discards_photo(record_store, storage, identity, monkeypatch):
    service, user = _service_with_user(record_store, storage, identity)

    def broken(*args, **kwargs):
        raise ConnectionError("provider down")
    monkeypatch.setattr(identity, 'update_profile', broken)

    with pytest.raises(ConnectionError):
        service.update_profile(user, 'Fay', PHOTO)
    assert storage.files == {}


def test_photo_kept_when_provider_cannot_be_restored(record_store, storage, identity, monkeypatch):
    """공급자 프로필을 되돌리지 못하면 공급자가 가리키는 새 사진을 지우지 않습니다."""
    service, user = _service_with_user(record_store, storage, identity)
    original = identity.update_profile
    calls = []

    def first_call_only(*args, **kwargs):
        calls.append(kwargs)
        if len(calls) > 1:
            raise ConnectionError("provider down")
        return original(*args, **kwargs)
    monkeypatch.setattr(identity, 'update_profile', first_call_only)
    record_store.fail_updates = True

    with pytest.raises(ConnectionError):
        service.update_profile(user, 'Fay', PHOTO)

    assert len(calls) == 2
    assert len(storage.files) == 1
    assert identity.accounts[user.uid]['photo_url'] == f"https://storage.test/{next(iter(storage.files))}"


def test_public_profile_counts_memories(client, auth_headers):
    uid = _me(client, auth_headers)['uid']
    client.post('/api/memories', headers=auth_headers, data={'content': 'one'},
                content_type='multipart/form-data')

    response = client.get(f'/api/users/{uid}')

    assert response.status_code == 200
    assert response.get_json()['displayName'] == 'Ann'
    assert response.get_json()['memoryCount'] == 1
    assert client.get('/api/users/nobody').status_code == 404
