# jmt/conftest.py
import copy
import itertools
import threading

import pytest

from jmt import create_app
from jmt.services.identity_service import AuthError, SIGN_IN_FAILED, SIGN_UP_FAILED
from jmt.services.record_store import DocumentNotFoundError


class _ArrayUnion:
    def __init__(self, values):
        self.values = list(values)


class _ArrayRemove:
    def __init__(self, values):
        self.values = list(values)


class InMemoryRecordStore:
    """FirestoreRecordStore와 같은 메서드를 갖는 메모리 저장소."""

    def __init__(self):
        self.collections = {}
        self.listeners = {}
        self.writes = []
        self.fail_fetch = False
        self.fail_updates = False
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def _collection(self, name):
        return self.collections.setdefault(name, {})

    def _record(self, document_id, data):
        record = copy.deepcopy(data)
        record['id'] = document_id
        return record

    def _notify(self, name):
        snapshot = [self._record(doc_id, data) for doc_id, data in self._collection(name).items()]
        for listener in list(self.listeners.get(name, [])):
            listener(snapshot)

    def fetch_collection(self, name, order_by=None, descending=False):
        if self.fail_fetch:
            raise ConnectionError("fetch failed")
        records = [self._record(doc_id, data) for doc_id, data in self._collection(name).items()]
        if order_by:
            records.sort(key=lambda r: r[order_by], reverse=descending)
        return records

    def get_document(self, name, document_id):
        data = self._collection(name).get(document_id)
        return self._record(document_id, data) if data is not None else None

    def subscribe(self, name, on_change):
        self.listeners.setdefault(name, []).append(on_change)
        self._notify(name)

        def unsubscribe():
            self.listeners[name].remove(on_change)
        return unsubscribe

    def create_document(self, name, fields, document_id=None):
        with self._lock:
            document_id = document_id or f"doc-{next(self._ids)}"
            data = copy.deepcopy(dict(fields))
            data.pop('id', None)
            self._collection(name)[document_id] = data
            self.writes.append(('create', name, document_id))
            self._notify(name)
            return document_id

    def _apply(self, current, partial_fields):
        for key, value in partial_fields.items():
            if isinstance(value, _ArrayUnion):
                existing = list(current.get(key) or [])
                current[key] = existing + [v for v in value.values if v not in existing]
            elif isinstance(value, _ArrayRemove):
                current[key] = [v for v in (current.get(key) or []) if v not in value.values]
            else:
                current[key] = copy.deepcopy(value)

    def update_document(self, name, document_id, partial_fields):
        if self.fail_updates:
            raise ConnectionError("update failed")
        with self._lock:
            current = self._collection(name).get(document_id)
            if current is None:
                raise DocumentNotFoundError(name, document_id)
            self._apply(current, partial_fields)
            self.writes.append(('update', name, document_id))
            self._notify(name)

    def delete_document(self, name, document_id):
        self._collection(name).pop(document_id, None)
        self.writes.append(('delete', name, document_id))
        self._notify(name)

    def update_document_if(self, name, document_id, build_update):
        with self._lock:
            current = self._collection(name).get(document_id)
            if current is None:
                raise DocumentNotFoundError(name, document_id)
            update = build_update(self._record(document_id, current))
            if update:
                self._apply(current, update)
                self.writes.append(('update', name, document_id))
                self._notify(name)
            return self._record(document_id, current)

    @staticmethod
    def array_union(values):
        return _ArrayUnion(values)

    @staticmethod
    def array_remove(values):
        return _ArrayRemove(values)


class InMemoryStorage:
    def __init__(self):
        self.files = {}
        self.fail_uploads = False

    def upload(self, path, data, content_type='application/octet-stream'):
        if self.fail_uploads:
            raise ConnectionError("upload failed")
        self.files[path] = (data, content_type)

    def get_public_url(self, path):
        if path not in self.files:
            raise FileNotFoundError(path)
        return f"https://storage.test/{path}"

    def delete(self, path):
        return self.files.pop(path, None) is not None


class InMemoryIdentity:
    def __init__(self):
        self.accounts = {}
        self._ids = itertools.count(1)

    def sign_up(self, email, password, display_name):
        if any(a['email'] == email for a in self.accounts.values()):
            raise AuthError.from_code('auth/email-already-in-use', SIGN_UP_FAILED)
        uid = f"uid-{next(self._ids)}"
        self.accounts[uid] = {'email': email, 'password': password,
                              'display_name': display_name, 'photo_url': None}
        return uid

    def verify_password(self, email, password):
        for uid, account in self.accounts.items():
            if account['email'] == email and account['password'] == password:
                return uid
        raise AuthError.from_code('auth/invalid-credential', SIGN_IN_FAILED)

    def update_profile(self, uid, display_name=None, photo_url=None, remove_photo=False):
        account = self.accounts[uid]
        if display_name is not None:
            account['display_name'] = display_name
        if remove_photo:
            account['photo_url'] = None
        elif photo_url is not None:
            account['photo_url'] = photo_url

    def get_user(self, uid):
        account = self.accounts.get(uid)
        if account is None:
            return None
        return {'uid': uid, 'email': account['email'],
                'display_name': account['display_name'], 'photo_url': account['photo_url']}


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def identity():
    return InMemoryIdentity()


@pytest.fixture
def app(record_store, storage, identity):
    app = create_app('testing', record_store=record_store, storage=storage, identity=identity)
    yield app
    app.shutdown()


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, email='ann@example.com', password='secret1', display_name='Ann'):
    response = client.post('/api/auth/register', json={
        'email': email,
        'password': password,
        'confirm_password': password,
        'display_name': display_name,
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()


@pytest.fixture
def register_user(client):
    """(email, password, display_name) -> Authorization 헤더"""
    def _register(email='ann@example.com', password='secret1', display_name='Ann'):
        body = register(client, email, password, display_name)
        return {'Authorization': f"Bearer {body['access_token']}"}
    return _register


@pytest.fixture
def auth_headers(register_user):
    return register_user()
