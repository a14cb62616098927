# jmt/api/lotto/services.py
import random
from typing import List, Optional

LOTTO_MIN = 1
LOTTO_MAX = 45
LOTTO_PICK = 6

# (상한, 색상) - 10 단위 구간
NUMBER_COLORS = [
    (10, '#ff6b6b'),  # 빨강
    (20, '#4ecdc4'),  # 청록
    (30, '#45b7d1'),  # 파랑
    (40, '#96ceb4'),  # 초록
]
LAST_COLOR = '#feca57'  # 노랑


def generate_numbers(rng: Optional[random.Random] = None) -> List[int]:
    """1~45 중 서로 다른 6개 번호를 오름차순으로 반환합니다."""
    rng = rng or random.Random()
    return sorted(rng.sample(range(LOTTO_MIN, LOTTO_MAX + 1), LOTTO_PICK))


def number_color(number: int) -> str:
    for upper, color in NUMBER_COLORS:
        if number <= upper:
            return color
    return LAST_COLOR
