# jmt/api/spot_difference/services.py

import logging
import random
import time
from typing import Callable, List, Optional

from jmt.api.spot_difference import renderer
from jmt.api.spot_difference.engine import (
    ClickResult, GameSessionStore, SpotTheDifferenceGame, SIDES, SIDE_MODE_RANDOM, rank_records
)
from jmt.models.game_record import GameRecord
from jmt.models.user import User
from jmt.services.feed_synchronizer import FeedSynchronizer
from jmt.utils.datetime_utils import DateTimeUtils

SPOT_THE_DIFFERENCE_RECORDS = 'spotTheDifferenceRecords'
ANONYMOUS = '익명'


class GameNotFoundError(LookupError):
    def __init__(self):
        super().__init__("진행 중인 게임이 없습니다. 게임을 먼저 시작해주세요.")


class SpotTheDifferenceService:
    """
    틀린그림 찾기 게임 진행과 랭킹을 담당합니다.
    - 게임 사진은 피드에서 사진이 있는 추억만 골라 씁니다.
    - 진행 중인 게임은 사용자별로 메모리에만 두고, 완료 기록만 저장합니다.
    """
    def __init__(self, record_store, feed: FeedSynchronizer, game_store: Optional[GameSessionStore] = None,
                 side_mode: str = SIDE_MODE_RANDOM, ranking_size: int = 10, image_timeout: float = 10,
                 rng: Optional[random.Random] = None, clock: Callable[[], float] = time.monotonic,
                 fetch_image: Callable[..., Optional[bytes]] = renderer.fetch_image):
        self.record_store = record_store
        self.feed = feed
        self.game_store = game_store or GameSessionStore()
        self.side_mode = side_mode
        self.ranking_size = ranking_size
        self.image_timeout = image_timeout
        self.rng = rng or random.Random()
        self.clock = clock
        self.fetch_image = fetch_image

    def start_game(self, user: User) -> SpotTheDifferenceGame:
        """새 게임을 시작합니다. 이전 게임이 있으면 버립니다."""
        game = SpotTheDifferenceGame.start(self.feed.memories_with_images(), self.rng, self.side_mode, self.clock)
        self.game_store.put(user.uid, game)
        logging.info(f"틀린그림 찾기 시작 (user: {user.uid}, memory_id: {game.memory_id})")
        return game

    def current_game(self, user: User) -> SpotTheDifferenceGame:
        game = self.game_store.get(user.uid)
        if game is None:
            raise GameNotFoundError()
        return game

    def click(self, user: User, side: str, x: float, y: float) -> ClickResult:
        game = self.current_game(user)
        result = game.click(side, x, y)
        if result.just_completed:
            self._save_record(user, game)
        return result

    def _save_record(self, user: User, game: SpotTheDifferenceGame):
        record = GameRecord(
            user_name=user.display_name or ANONYMOUS,
            time=game.elapsed_seconds,
            found_count=game.found_count,
            created_at=DateTimeUtils.now()
        )
        try:
            record.id = self.record_store.create_document(SPOT_THE_DIFFERENCE_RECORDS, record.to_dict())
            logging.info(f"게임 기록 저장 (user: {user.uid}, time: {record.time}s)")
        except Exception as e:
            logging.error(f"기록 저장 오류 (user: {user.uid}): {e}", exc_info=True)

    def render_image(self, user: User, side: str) -> bytes:
        """현재 게임의 왼쪽/오른쪽 이미지를 PNG로 그립니다."""
        if side not in SIDES:
            raise ValueError(f"side는 {', '.join(SIDES)} 중 하나여야 합니다.")
        game = self.current_game(user)
        source = self.fetch_image(game.image_url, timeout=self.image_timeout)
        # 같은 게임, 같은 면은 몇 번을 요청해도 같은 그림이 나와야 합니다.
        rng = random.Random(f"{game.render_seed}-{side}")
        image = renderer.render_difference_image(source, game.differences, side, rng)
        return renderer.to_png_bytes(image)

    def get_records(self, limit: Optional[int] = None) -> List[GameRecord]:
        records = [GameRecord.from_dict(r) for r in self.record_store.fetch_collection(SPOT_THE_DIFFERENCE_RECORDS)]
        return rank_records(records, limit if limit is not None else self.ranking_size)
