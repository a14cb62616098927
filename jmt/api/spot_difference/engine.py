# jmt/api/spot_difference/engine.py
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from jmt.models.game_record import GameRecord
from jmt.models.memory import Memory

LEFT = 'left'
RIGHT = 'right'
SIDES = (LEFT, RIGHT)

DIFFERENCE_COUNT = 5
COORDINATE_MIN = 10
COORDINATE_MAX = 90
# 좌표는 이미지 크기 대비 퍼센트. 가로/세로 모두 이 값 미만이어야 정답입니다.
HIT_TOLERANCE = 8
MISS_MARK_DURATION_MS = 1000

SIDE_MODE_RANDOM = 'random'
SIDE_MODE_ALTERNATING = 'alternating'


@dataclass
class Difference:
    x: float
    y: float
    side: str
    found: bool = False

    def is_hit(self, side: str, x: float, y: float) -> bool:
        return (
            not self.found
            and self.side == side
            and abs(self.x - x) < HIT_TOLERANCE
            and abs(self.y - y) < HIT_TOLERANCE
        )

    def to_dict(self) -> Dict:
        return {'x': self.x, 'y': self.y, 'side': self.side, 'found': self.found}


@dataclass
class MissMark:
    """오답 위치에 잠시 보여줄 X 표시."""
    x: float
    y: float
    visible_until: float


@dataclass
class ClickResult:
    hit: bool
    found_count: int
    completed: bool
    difference: Optional[Difference] = None
    miss_mark: Optional[MissMark] = None
    # 이번 클릭으로 게임이 끝났는지 (기록 저장은 이때 한 번만)
    just_completed: bool = False
    ignored: bool = False


def generate_differences(rng: random.Random, mode: str = SIDE_MODE_RANDOM) -> List[Difference]:
    """
    틀린 부분 5개를 만듭니다.
    x, y는 10~90(%) 사이 균등 분포, side는 무작위(또는 mode='alternating'이면 왼쪽/오른쪽 번갈아).
    """
    differences = []
    for i in range(DIFFERENCE_COUNT):
        if mode == SIDE_MODE_ALTERNATING:
            side = SIDES[i % 2]
        else:
            side = rng.choice(SIDES)
        differences.append(Difference(
            x=rng.uniform(COORDINATE_MIN, COORDINATE_MAX),
            y=rng.uniform(COORDINATE_MIN, COORDINATE_MAX),
            side=side
        ))
    return differences


class SpotTheDifferenceGame:
    """
    한 판의 틀린그림 찾기 상태.
    타이머는 시작 시점부터 흐르고, 다섯 번째 정답에서 멈춥니다.
    """

    def __init__(self, memory_id: str, image_url: str, differences: List[Difference],
                 clock: Callable[[], float] = time.monotonic, render_seed: Optional[int] = None):
        self.memory_id = memory_id
        self.image_url = image_url
        self.differences = differences
        self.clock = clock
        self.render_seed = render_seed if render_seed is not None else random.getrandbits(32)
        self.started_at = clock()
        self.finished_at: Optional[float] = None
        self.miss_mark: Optional[MissMark] = None
        self._lock = threading.Lock()

    @classmethod
    def start(cls, memories: List[Memory], rng: random.Random, mode: str = SIDE_MODE_RANDOM,
              clock: Callable[[], float] = time.monotonic) -> "SpotTheDifferenceGame":
        """사진이 있는 추억 중 하나를 고르고, 그 중 사진 한 장을 골라 새 게임을 시작합니다."""
        candidates = [memory for memory in memories if memory.images]
        if not candidates:
            raise ValueError("게임에 사용할 추억 사진이 없습니다.")
        memory = rng.choice(candidates)
        image_url = rng.choice(memory.images)
        return cls(
            memory_id=memory.id,
            image_url=image_url,
            differences=generate_differences(rng, mode),
            clock=clock,
            render_seed=rng.getrandbits(32)
        )

    @property
    def found_count(self) -> int:
        return sum(1 for d in self.differences if d.found)

    @property
    def completed(self) -> bool:
        return self.found_count >= DIFFERENCE_COUNT

    @property
    def elapsed_seconds(self) -> int:
        end = self.finished_at if self.finished_at is not None else self.clock()
        return int(end - self.started_at)

    def visible_miss_mark(self) -> Optional[MissMark]:
        if self.miss_mark and self.clock() < self.miss_mark.visible_until:
            return self.miss_mark
        return None

    def click(self, side: str, x: float, y: float) -> ClickResult:
        if side not in SIDES:
            raise ValueError(f"side는 {', '.join(SIDES)} 중 하나여야 합니다.")
        # 같은 게임에 동시에 들어온 클릭도 하나씩 판정합니다. (완료 기록은 한 번만)
        with self._lock:
            return self._judge(side, x, y)

    def _judge(self, side: str, x: float, y: float) -> ClickResult:
        if self.completed:
            return ClickResult(hit=False, found_count=self.found_count, completed=True, ignored=True)

        target = next((d for d in self.differences if d.is_hit(side, x, y)), None)
        if target is None:
            self.miss_mark = MissMark(x=x, y=y, visible_until=self.clock() + MISS_MARK_DURATION_MS / 1000)
            return ClickResult(hit=False, found_count=self.found_count, completed=False, miss_mark=self.miss_mark)

        target.found = True
        just_completed = self.completed and self.finished_at is None
        if just_completed:
            self.finished_at = self.clock()
        return ClickResult(
            hit=True,
            found_count=self.found_count,
            completed=self.completed,
            difference=target,
            just_completed=just_completed
        )


class GameSessionStore:
    """사용자별 진행 중인 게임. 프로세스 메모리에만 보관합니다."""

    def __init__(self):
        self._games: Dict[str, SpotTheDifferenceGame] = {}
        self._lock = threading.Lock()

    def put(self, user_id: str, game: SpotTheDifferenceGame):
        with self._lock:
            self._games[user_id] = game

    def get(self, user_id: str) -> Optional[SpotTheDifferenceGame]:
        with self._lock:
            return self._games.get(user_id)

    def discard(self, user_id: str):
        with self._lock:
            self._games.pop(user_id, None)


def rank_records(records: List[GameRecord], limit: Optional[int] = None) -> List[GameRecord]:
    """찾은 개수 내림차순, 같으면 시간 오름차순."""
    ranked = sorted(records, key=GameRecord.rank_key)
    return ranked[:limit] if limit is not None else ranked


def format_time(seconds: int) -> str:
    """초를 'm:ss' 형식으로 바꿉니다. (예: 75 -> '1:15')"""
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"
