# jmt/api/navigation/services.py
from dataclasses import dataclass, asdict
from typing import Any, Dict, List

LOGIN_PATH = '/login'
REGISTER_PATH = '/register'
FEED_PATH = '/'
LOTTO_PATH = '/lotto'
COFFEE_LOTTERY_PATH = '/coffee-lottery'
SPOT_DIFFERENCE_PATH = '/spot-difference'

AUTH_PATHS = (LOGIN_PATH, REGISTER_PATH)


@dataclass(frozen=True)
class MenuItem:
    path: str
    label: str
    description: str


MENU_ITEMS = [
    MenuItem(FEED_PATH, '추억 피드', '팀원들의 소중한 순간들'),
    MenuItem(LOTTO_PATH, '이번주 로또 번호는?', '1~45 중 6개 번호 추천'),
    MenuItem(COFFEE_LOTTERY_PATH, '이번주 커피 당첨자는?', '커피 사다리 게임'),
    MenuItem(SPOT_DIFFERENCE_PATH, '틀린그림 찾기', '추억 사진으로 게임하기'),
]

# 메뉴 하단의 동작 버튼 (경로 이동이 아님)
ACCOUNT_ACTIONS = [
    {'key': 'profile', 'label': '프로필 설정', 'description': '개인정보 수정'},
    {'key': 'logout', 'label': '로그아웃', 'description': '계정에서 나가기'},
]


def normalize_path(path: str) -> str:
    """'#/lotto', 'lotto/', '' 같은 입력을 '/lotto', '/' 형태로 맞춥니다."""
    path = (path or '').strip().lstrip('#')
    path = path.split('?', 1)[0]
    if not path.startswith('/'):
        path = '/' + path
    if len(path) > 1:
        path = path.rstrip('/') or '/'
    return path


def route_table(spot_difference_enabled: bool = True) -> List[str]:
    paths = [LOGIN_PATH, REGISTER_PATH, FEED_PATH, LOTTO_PATH, COFFEE_LOTTERY_PATH]
    if spot_difference_enabled:
        paths.append(SPOT_DIFFERENCE_PATH)
    return paths


def resolve_route(path: str, authenticated: bool, spot_difference_enabled: bool = True) -> str:
    """
    요청한 경로에 대해 실제로 보여줄 경로를 결정합니다.
    1. 등록되지 않은 경로는 '/'로 보냅니다.
    2. 로그인/회원가입 외의 경로는 로그인하지 않았다면 '/login'으로 보냅니다.
    """
    path = normalize_path(path)
    if path not in route_table(spot_difference_enabled):
        path = FEED_PATH
    if path not in AUTH_PATHS and not authenticated:
        return LOGIN_PATH
    return path


def sidebar_menu(active_path: str, spot_difference_enabled: bool = True) -> List[Dict[str, Any]]:
    active_path = normalize_path(active_path)
    items = [item for item in MENU_ITEMS if spot_difference_enabled or item.path != SPOT_DIFFERENCE_PATH]
    return [dict(asdict(item), active=item.path == active_path) for item in items]
