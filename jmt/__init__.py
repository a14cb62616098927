# jmt/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import atexit
import os
import logging
from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
import firebase_admin
from firebase_admin import credentials

# - 설정 / 보안
from jmt.core.config import config_by_name
from jmt.core.security import init_jwt

# - API 블루프린트
from jmt.api.auth.routes import auth_bp
from jmt.api.users.routes import users_bp
from jmt.api.memories.routes import memories_bp
from jmt.api.comments.routes import comments_bp
from jmt.api.lotteries.routes import lotteries_bp
from jmt.api.lotto.routes import lotto_bp
from jmt.api.spot_difference.routes import spot_difference_bp
from jmt.api.navigation.routes import navigation_bp

# - 서비스 모듈
from jmt.services.record_store import FirestoreRecordStore
from jmt.services.storage_service import StorageService
from jmt.services.identity_service import IdentityService
from jmt.services.feed_synchronizer import FeedSynchronizer
from jmt.api.auth.services import SessionManager
from jmt.api.users.services import UserService
from jmt.api.memories.services import MemoryService
from jmt.api.comments.services import CommentService
from jmt.api.lotteries.services import CoffeeLotteryService, LotteryBoard
from jmt.api.spot_difference.services import SpotTheDifferenceService


def _init_firebase(app: Flask):
    if firebase_admin._apps:
        return
    cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
    cred = credentials.Certificate(cred_path)
    firebase_admin.initialize_app(cred, {
        'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
    })


def create_app(config_name=None, record_store=None, storage=None, identity=None, config_overrides=None):
    """
    Flask 애플리케이션 팩토리 함수.
    record_store / storage / identity를 넘기면 Firebase 대신 그 구현을 사용합니다. (테스트용)
    config_overrides는 설정 클래스 값을 덮어씁니다.
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    if config_overrides:
        app.config.update(config_overrides)
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    init_jwt(app)

    if record_store is None or storage is None or identity is None:
        _init_firebase(app)

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 다른 서비스의 기반이 되는 공용/핵심 서비스 먼저 생성
    app.services['records'] = record_store or FirestoreRecordStore()

    if storage is None:
        try:
            storage = StorageService()
            storage.init_app(app)
            logging.info("Storage service initialized successfully")
        except Exception as e:
            logging.error(f"Failed to initialize storage service: {e}")
            raise
    app.services['storage'] = storage

    if identity is None:
        identity = IdentityService()
        identity.init_app(app)
    app.services['identity'] = identity

    app.services['feed'] = FeedSynchronizer(app.services['records'])

    # 5-2. 다른 서비스를 주입받아야 하는 도메인 서비스 생성
    sessions = SessionManager()
    sessions.init_app(app, app.services['records'], app.services['identity'])
    app.services['sessions'] = sessions
    # 로그인/회원가입 직후 피드를 새로 읽습니다.
    sessions.on_session_change(lambda user: app.services['feed'].refresh() if user else None)

    app.services['memories'] = MemoryService(
        record_store=app.services['records'],
        storage_service=app.services['storage'],
        feed=app.services['feed'],
        max_images=app.config['MEMORY_MAX_IMAGES'],
        max_content_length=app.config['MEMORY_MAX_CONTENT_LENGTH']
    )
    app.services['comments'] = CommentService(
        record_store=app.services['records'],
        on_mutation=app.services['feed'].refresh,
        max_length=app.config['COMMENT_MAX_LENGTH']
    )
    app.services['users'] = UserService(
        record_store=app.services['records'],
        storage_service=app.services['storage'],
        identity=app.services['identity'],
        feed=app.services['feed']
    )

    # - 커피 추첨 (실시간 구독은 설정으로 켜고 끕니다)
    app.services['lotteries'] = CoffeeLotteryService(
        record_store=app.services['records'],
        draw_delay_seconds=app.config['LOTTERY_DRAW_DELAY_SECONDS']
    )
    app.services['lottery_board'] = LotteryBoard(app.services['records'])
    if app.config['LOTTERY_LIVE_SUBSCRIPTION']:
        try:
            app.services['lottery_board'].start()
        except Exception as e:
            logging.warning(f"커피 추첨 실시간 구독 시작 실패, 조회 방식으로 동작합니다: {e}")

    if app.config['SPOT_DIFFERENCE_ENABLED']:
        app.services['spot_difference'] = SpotTheDifferenceService(
            record_store=app.services['records'],
            feed=app.services['feed'],
            side_mode=app.config['SPOT_DIFFERENCE_SIDE_MODE'],
            ranking_size=app.config['SPOT_DIFFERENCE_RANKING_SIZE'],
            image_timeout=app.config['IMAGE_FETCH_TIMEOUT_SECONDS']
        )

    def shutdown():
        app.services['lottery_board'].stop()
        app.services['sessions'].shutdown()

    app.shutdown = shutdown
    atexit.register(shutdown)

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(memories_bp, url_prefix='/api/memories')
    app.register_blueprint(comments_bp, url_prefix='/api')
    app.register_blueprint(lotteries_bp, url_prefix='/api/lotteries')
    app.register_blueprint(lotto_bp, url_prefix='/api/lotto')
    app.register_blueprint(navigation_bp, url_prefix='/api/navigation')
    if app.config['SPOT_DIFFERENCE_ENABLED']:
        app.register_blueprint(spot_difference_bp, url_prefix='/api/spot-difference')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 라우트에서 처리되지 않은 모든 예외 (404, 405 등 HTTP 오류는 그대로 반환)
        if isinstance(err, HTTPException):
            return err
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
