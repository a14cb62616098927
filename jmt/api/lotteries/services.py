# jmt/api/lotteries/services.py

import logging
import random
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from jmt.models.lottery import Lottery, Participant
from jmt.models.user import User
from jmt.services.record_store import DocumentNotFoundError
from jmt.utils.datetime_utils import DateTimeUtils

COFFEE_LOTTERIES = 'coffeeLotteries'


class LotteryStateError(Exception):
    """종료된 추첨에 참가/취소/추첨하려 하거나 참가자가 부족할 때 발생합니다."""


def pick_winners(participants: List[Participant], winner_count: int, rng: random.Random) -> List[str]:
    """참가자를 균등하게 섞어 앞에서부터 winner_count명의 userId를 뽑습니다."""
    shuffled = list(participants)
    rng.shuffle(shuffled)
    return [p.user_id for p in shuffled[:winner_count]]


class CoffeeLotteryService:
    """
    커피 추첨 생성/참가/취소/추첨/삭제.
    참가, 취소, 추첨은 모두 트랜잭션 안에서 현재 문서를 다시 읽고 검사한 뒤 씁니다.
    동시에 두 번 추첨하면 먼저 커밋된 쪽만 성공하고 나머지는 LotteryStateError가 됩니다.
    """
    def __init__(self, record_store, draw_delay_seconds: float = 2,
                 rng: Optional[random.Random] = None, sleep: Callable[[float], Any] = time.sleep):
        self.record_store = record_store
        self.draw_delay_seconds = draw_delay_seconds
        self.rng = rng or random.Random()
        self.sleep = sleep

    def get_lottery(self, lottery_id: str) -> Lottery:
        data = self.record_store.get_document(COFFEE_LOTTERIES, lottery_id)
        if not data:
            raise DocumentNotFoundError(COFFEE_LOTTERIES, lottery_id)
        return Lottery.from_dict(data)

    def create_lottery(self, title: str, winner_count: int) -> Lottery:
        title = (title or '').strip()
        if not title:
            raise ValueError("추첨 제목을 입력해주세요.")
        if winner_count < 1:
            raise ValueError("당첨자 수는 1명 이상이어야 합니다.")

        fields = {
            'title': title,
            'winnerCount': winner_count,
            'participants': [],
            'winners': [],
            'isActive': True,
            'createdAt': DateTimeUtils.now(),
        }
        lottery_id = self.record_store.create_document(COFFEE_LOTTERIES, fields)
        logging.info(f"커피 추첨 생성 완료 (lottery_id: {lottery_id}, title: {title})")
        fields['id'] = lottery_id
        return Lottery.from_dict(fields)

    def join(self, user: User, lottery_id: str) -> Lottery:
        """진행 중인 추첨에 참가합니다. 이미 참가했다면 아무것도 쓰지 않습니다."""
        def build_update(current: Dict[str, Any]) -> Dict[str, Any]:
            lottery = Lottery.from_dict(current)
            if not lottery.is_active:
                raise LotteryStateError("이미 종료된 추첨입니다.")
            if lottery.has_participant(user.uid):
                return {}
            participant = Participant(
                id=str(DateTimeUtils.to_timestamp_ms(DateTimeUtils.now())),
                user_id=user.uid,
                user_name=user.display_name,
                user_photo_url=user.photo_url
            )
            return {'participants': [p.to_dict() for p in lottery.participants] + [participant.to_dict()]}

        updated = self.record_store.update_document_if(COFFEE_LOTTERIES, lottery_id, build_update)
        logging.info(f"추첨 참가 (lottery_id: {lottery_id}, user: {user.uid})")
        return Lottery.from_dict(updated)

    def leave(self, user: User, lottery_id: str) -> Lottery:
        def build_update(current: Dict[str, Any]) -> Dict[str, Any]:
            lottery = Lottery.from_dict(current)
            if not lottery.is_active:
                raise LotteryStateError("이미 종료된 추첨입니다.")
            if not lottery.has_participant(user.uid):
                return {}
            return {'participants': [p.to_dict() for p in lottery.participants if p.user_id != user.uid]}

        updated = self.record_store.update_document_if(COFFEE_LOTTERIES, lottery_id, build_update)
        logging.info(f"추첨 참가 취소 (lottery_id: {lottery_id}, user: {user.uid})")
        return Lottery.from_dict(updated)

    def draw(self, lottery_id: str, rng: Optional[random.Random] = None) -> Lottery:
        """
        당첨자를 뽑고 추첨을 종료합니다.
        - 진행 중이고 참가자 수가 당첨자 수 이상일 때만 가능합니다.
        - 연출을 위해 draw_delay_seconds만큼 기다린 뒤 씁니다.
        """
        rng = rng or self.rng
        lottery = self.get_lottery(lottery_id)
        self._check_drawable(lottery)

        if self.draw_delay_seconds:
            self.sleep(self.draw_delay_seconds)

        def build_update(current: Dict[str, Any]) -> Dict[str, Any]:
            latest = Lottery.from_dict(current)
            self._check_drawable(latest)
            return {
                'winners': pick_winners(latest.participants, latest.winner_count, rng),
                'isActive': False,
            }

        updated = self.record_store.update_document_if(COFFEE_LOTTERIES, lottery_id, build_update)
        logging.info(f"추첨 완료 (lottery_id: {lottery_id}, winners: {updated.get('winners')})")
        return Lottery.from_dict(updated)

    @staticmethod
    def _check_drawable(lottery: Lottery):
        if not lottery.is_active:
            raise LotteryStateError("이미 종료된 추첨입니다.")
        if len(lottery.participants) < lottery.winner_count:
            raise LotteryStateError(
                f"참가자가 부족합니다. (참가자 {len(lottery.participants)}명, 당첨자 {lottery.winner_count}명)"
            )

    def delete_lottery(self, lottery_id: str) -> None:
        self.get_lottery(lottery_id)
        self.record_store.delete_document(COFFEE_LOTTERIES, lottery_id)
        logging.info(f"커피 추첨 삭제 완료 (lottery_id: {lottery_id})")


class LotteryBoard:
    """
    'coffeeLotteries' 컬렉션의 실시간 목록.
    start()로 구독을 시작하면 스냅샷이 도착하는 순서대로 목록을 통째로 교체하고,
    구독 중이 아니면 조회할 때마다 컬렉션을 직접 읽습니다.
    """
    def __init__(self, record_store):
        self.record_store = record_store
        self._lotteries: List[Lottery] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._received = False
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._unsubscribe is not None

    def start(self):
        if self.is_running:
            return
        self._unsubscribe = self.record_store.subscribe(COFFEE_LOTTERIES, self._apply_snapshot)

    def stop(self):
        if self._unsubscribe is None:
            return
        try:
            self._unsubscribe()
        except Exception as e:
            logging.warning(f"커피 추첨 구독 해제 실패: {e}")
        self._unsubscribe = None
        with self._lock:
            self._received = False

    @staticmethod
    def _sorted(records: List[Dict[str, Any]]) -> List[Lottery]:
        lotteries = [Lottery.from_dict(record) for record in records]
        lotteries.sort(key=lambda lottery: lottery.created_at, reverse=True)
        return lotteries

    def _apply_snapshot(self, records: List[Dict[str, Any]]):
        lotteries = self._sorted(records)
        with self._lock:
            self._lotteries = lotteries
            self._received = True

    def lotteries(self) -> List[Lottery]:
        """최신순 추첨 목록."""
        with self._lock:
            if self.is_running and self._received:
                return list(self._lotteries)
        return self._sorted(self.record_store.fetch_collection(COFFEE_LOTTERIES))


def to_view(lottery: Lottery, viewer_id: Optional[str]) -> Dict[str, Any]:
    """응답 스키마에 넘길 dict. 당첨자 이름은 참가자 목록에서 찾아 붙입니다."""
    participants_by_user = {p.user_id: p for p in lottery.participants}
    return {
        'id': lottery.id,
        'title': lottery.title,
        'winnerCount': lottery.winner_count,
        'participants': [p.to_dict() for p in lottery.participants],
        'winners': [
            {
                'userId': winner_id,
                'userName': participants_by_user[winner_id].user_name if winner_id in participants_by_user else '',
                'userPhotoURL': participants_by_user[winner_id].user_photo_url if winner_id in participants_by_user else None,
            }
            for winner_id in lottery.winners
        ],
        'isActive': lottery.is_active,
        'createdAt': lottery.created_at,
        'participantCount': len(lottery.participants),
        'isParticipant': lottery.has_participant(viewer_id),
        'isWinner': lottery.has_winner(viewer_id),
        'canDraw': lottery.can_draw,
    }
