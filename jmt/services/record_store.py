# jmt/services/record_store.py
import logging
from typing import Any, Callable, Dict, List, Optional

from firebase_admin import firestore

from jmt.utils.datetime_utils import DateTimeUtils


class DocumentNotFoundError(LookupError):
    """요청한 문서가 컬렉션에 존재하지 않을 때 발생합니다."""

    def __init__(self, collection: str, document_id: str):
        super().__init__(f"문서를 찾을 수 없습니다: {collection}/{document_id}")
        self.collection = collection
        self.document_id = document_id


class FirestoreRecordStore:
    """
    Firestore 문서 저장소에 대한 얇은 클라이언트.
    애플리케이션의 나머지 부분은 이 클래스의 메서드만 통해 컬렉션에 접근합니다.

    - 모든 읽기 결과는 문서 필드에 'id'(문서 ID)를 더한 dict로 반환합니다.
    - 원자성은 단일 문서 단위로만 보장하며, 여러 문서에 걸친 트랜잭션은 사용하지 않습니다.
    """

    def __init__(self, db=None):
        self.db = db or firestore.client()

    @staticmethod
    def _to_record(snapshot) -> Dict[str, Any]:
        data = DateTimeUtils.from_firestore(snapshot.to_dict() or {})
        data['id'] = snapshot.id
        return data

    def fetch_collection(self, name: str, order_by: Optional[str] = None, descending: bool = False) -> List[Dict[str, Any]]:
        """컬렉션 전체를 (선택적으로 정렬하여) 읽어옵니다."""
        query = self.db.collection(name)
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        return [self._to_record(doc) for doc in query.stream()]

    def get_document(self, name: str, document_id: str) -> Optional[Dict[str, Any]]:
        doc = self.db.collection(name).document(document_id).get()
        if not doc.exists:
            return None
        return self._to_record(doc)

    def subscribe(self, name: str, on_change: Callable[[List[Dict[str, Any]]], None]) -> Callable[[], None]:
        """
        컬렉션의 어떤 문서가 바뀌든 전체 스냅샷을 on_change로 전달합니다.
        반환값을 호출하면 구독이 해제됩니다.
        """
        def _on_snapshot(col_snapshot, changes, read_time):
            try:
                on_change([self._to_record(doc) for doc in col_snapshot])
            except Exception as e:
                logging.error(f"스냅샷 처리 실패 (collection: {name}): {e}", exc_info=True)

        watch = self.db.collection(name).on_snapshot(_on_snapshot)
        logging.info(f"Firestore 구독 시작 (collection: {name})")
        return watch.unsubscribe

    def create_document(self, name: str, fields: Dict[str, Any], document_id: Optional[str] = None) -> str:
        """새 문서를 만들고 문서 ID를 반환합니다."""
        data = DateTimeUtils.for_firestore(dict(fields))
        data.pop('id', None)
        collection = self.db.collection(name)
        if document_id:
            doc_ref = collection.document(document_id)
            doc_ref.set(data)
        else:
            _, doc_ref = collection.add(data)
        logging.info(f"Firestore 저장 성공 (Collection: {name}, Doc ID: {doc_ref.id})")
        return doc_ref.id

    def update_document(self, name: str, document_id: str, partial_fields: Dict[str, Any]) -> None:
        """지정한 필드만 덮어씁니다. array_union/array_remove 센티넬을 값으로 쓸 수 있습니다."""
        self.db.collection(name).document(document_id).update(DateTimeUtils.for_firestore(dict(partial_fields)))

    def delete_document(self, name: str, document_id: str) -> None:
        self.db.collection(name).document(document_id).delete()

    def update_document_if(self, name: str, document_id: str,
                           build_update: Callable[[Dict[str, Any]], Dict[str, Any]]) -> Dict[str, Any]:
        """
        트랜잭션 안에서 현재 문서를 읽어 build_update(current)로 변경분을 계산한 뒤 씁니다.
        build_update가 예외를 던지면 아무것도 쓰지 않고 그 예외가 그대로 전파됩니다.
        빈 dict를 반환하면 쓰지 않습니다.
        동시에 들어온 두 요청 중 먼저 커밋된 쪽만 조건을 통과합니다.

        :return: 변경분이 반영된 문서 dict
        """
        doc_ref = self.db.collection(name).document(document_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _update_in_transaction(transaction):
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise DocumentNotFoundError(name, document_id)
            current = self._to_record(snapshot)
            update = build_update(current)
            if update:
                transaction.update(doc_ref, DateTimeUtils.for_firestore(dict(update)))
            current.update(update)
            return current

        return _update_in_transaction(transaction)

    @staticmethod
    def array_union(values: List[Any]):
        return firestore.ArrayUnion(DateTimeUtils.for_firestore(list(values)))

    @staticmethod
    def array_remove(values: List[Any]):
        return firestore.ArrayRemove(list(values))
