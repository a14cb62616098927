# jmt/api/spot_difference/renderer.py
import io
import logging
import math
import random
from typing import List, Optional

import requests
from PIL import Image, ImageDraw, UnidentifiedImageError

from jmt.api.spot_difference.engine import Difference

BLANK_CANVAS_SIZE = (400, 300)
SHAPES = ('circle', 'square', 'line', 'star')


def fetch_image(url: str, timeout: float = 10) -> Optional[bytes]:
    """원본 사진을 내려받습니다. 실패하면 None을 반환합니다."""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        return response.content
    except requests.RequestException as e:
        logging.warning(f"게임 이미지 다운로드 실패 ({url}): {e}")
        return None


def load_canvas(source_bytes: Optional[bytes]) -> Image.Image:
    """원본을 RGB 캔버스로 엽니다. 읽을 수 없으면 400x300 흰 캔버스를 반환합니다."""
    if source_bytes:
        try:
            image = Image.open(io.BytesIO(source_bytes))
            image.load()
            return image.convert('RGB')
        except (UnidentifiedImageError, OSError) as e:
            logging.warning(f"게임 이미지 디코딩 실패: {e}")
    return Image.new('RGB', BLANK_CANVAS_SIZE, 'white')


def _random_color(rng: random.Random):
    return (rng.randint(0, 255), rng.randint(0, 255), rng.randint(0, 255))


def _star_points(cx: float, cy: float, outer: float, inner: float):
    points = []
    for i in range(10):
        radius = outer if i % 2 == 0 else inner
        angle = math.pi / 5 * i - math.pi / 2
        points.append((cx + radius * math.cos(angle), cy + radius * math.sin(angle)))
    return points


def draw_shape(draw: ImageDraw.ImageDraw, shape: str, cx: float, cy: float, size: float, color):
    half = size / 2
    if shape == 'circle':
        draw.ellipse([cx - half, cy - half, cx + half, cy + half], fill=color)
    elif shape == 'square':
        draw.rectangle([cx - half, cy - half, cx + half, cy + half], fill=color)
    elif shape == 'line':
        draw.line([cx - half, cy - half, cx + half, cy + half], fill=color, width=max(2, int(size / 6)))
    elif shape == 'star':
        draw.polygon(_star_points(cx, cy, half, half / 2), fill=color)
    else:
        raise ValueError(f"알 수 없는 도형: {shape}")


def render_difference_image(source_bytes: Optional[bytes], differences: List[Difference],
                            side: str, rng: random.Random) -> Image.Image:
    """
    원본 사본 위, 해당 side의 틀린 부분 위치마다 무작위 도형(원/사각형/선/별)을 무작위 색으로 그립니다.
    좌표는 퍼센트이므로 캔버스 크기에 맞춰 픽셀로 환산합니다.
    """
    canvas = load_canvas(source_bytes)
    draw = ImageDraw.Draw(canvas)
    width, height = canvas.size
    size = max(12, min(width, height) * 0.08)

    for difference in differences:
        if difference.side != side:
            continue
        cx = difference.x / 100 * width
        cy = difference.y / 100 * height
        draw_shape(draw, rng.choice(SHAPES), cx, cy, size, _random_color(rng))
    return canvas


def to_png_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format='PNG')
    return buffer.getvalue()
