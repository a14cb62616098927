# jmt/core/config.py

import os
from datetime import timedelta


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 서명 키. Access/Refresh 토큰의 위변조를 방지합니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=14)

    # Firebase 관련 설정
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')
    # 이메일/비밀번호 로그인은 Admin SDK로 검증할 수 없어 Identity Toolkit REST API 키가 필요합니다.
    FIREBASE_WEB_API_KEY = os.getenv('FIREBASE_WEB_API_KEY')

    # 추억(피드) 작성 제한
    MEMORY_MAX_IMAGES = 5
    MEMORY_MAX_CONTENT_LENGTH = 500
    COMMENT_MAX_LENGTH = 500

    # 커피 추첨: 추첨 애니메이션을 위한 인위적 지연(초)
    LOTTERY_DRAW_DELAY_SECONDS = float(os.getenv('LOTTERY_DRAW_DELAY_SECONDS', 2))
    LOTTERY_LIVE_SUBSCRIPTION = _env_bool('LOTTERY_LIVE_SUBSCRIPTION', True)

    # 틀린그림 찾기
    SPOT_DIFFERENCE_ENABLED = _env_bool('SPOT_DIFFERENCE_ENABLED', True)
    SPOT_DIFFERENCE_SIDE_MODE = os.getenv('SPOT_DIFFERENCE_SIDE_MODE', 'random')
    SPOT_DIFFERENCE_RANKING_SIZE = 10

    # 외부 HTTP 호출(이미지 다운로드, Identity Toolkit) 타임아웃
    IMAGE_FETCH_TIMEOUT_SECONDS = 10
    IDENTITY_REQUEST_TIMEOUT_SECONDS = 10


class DevelopmentConfig(Config):
    """개발 환경 설정."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH', Config.FIREBASE_CREDENTIALS_PATH)


class TestingConfig(Config):
    """테스트 환경 설정. 외부 구독과 추첨 지연을 끕니다."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'testing-secret-key-with-enough-length')
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')
    LOTTERY_DRAW_DELAY_SECONDS = 0
    LOTTERY_LIVE_SUBSCRIPTION = False


class ProductionConfig(Config):
    """운영 환경 설정."""
    DEBUG = False


# FLASK_ENV 값에 따라 create_app에서 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
