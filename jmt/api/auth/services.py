# jmt/api/auth/services.py
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional

from flask import Flask

from jmt.api.auth.schemas import PASSWORD_MIN_LENGTH
from jmt.models.user import User, DEFAULT_DISPLAY_NAME
from jmt.services.identity_service import AuthError
from jmt.utils.datetime_utils import DateTimeUtils

USERS = 'users'
REVOKED_TOKENS = 'revoked_tokens'

SessionListener = Callable[[Optional[User]], None]


class SessionManager:
    """
    로그인 세션의 수명주기를 관리합니다.
    전역 인증 상태 대신 앱에 하나씩 생성되어 app.services['sessions']로 주입되며,
    init_app에서 시작하고 shutdown에서 정리합니다.
    """

    def __init__(self):
        self.record_store = None
        self.identity = None
        self.app: Optional[Flask] = None
        self._listeners: List[SessionListener] = []
        self._lock = threading.Lock()

    def init_app(self, app: Flask, record_store, identity):
        """앱 초기화 과정에서 호출되어 레코드 스토어와 인증 공급자를 연결합니다."""
        self.app = app
        self.record_store = record_store
        self.identity = identity

    def shutdown(self):
        with self._lock:
            self._listeners.clear()

    # --- 세션 변경 구독 ---
    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        """세션이 생기거나 사라질 때마다 callback(User | None)을 호출합니다."""
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)
        return unsubscribe

    def _emit(self, user: Optional[User]):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(user)
            except Exception as e:
                logging.error(f"세션 변경 리스너 실행 실패: {e}", exc_info=True)

    # --- 회원가입 / 로그인 / 로그아웃 ---
    def sign_up(self, email: str, password: str, display_name: str) -> User:
        """계정을 만들고 'users' 컬렉션에 사용자 문서를 함께 저장합니다."""
        if len(password or '') < PASSWORD_MIN_LENGTH:
            raise ValueError(f"비밀번호는 최소 {PASSWORD_MIN_LENGTH}자 이상이어야 합니다.")
        display_name = display_name.strip()
        if not display_name:
            raise ValueError("이름을 입력해주세요.")

        uid = self.identity.sign_up(email, password, display_name)
        self.identity.update_profile(uid, display_name=display_name)

        user = User(uid=uid, email=email, display_name=display_name, photo_url=None)
        try:
            self.record_store.create_document(USERS, user.to_dict(), document_id=uid)
        except Exception as e:
            logging.error(f"Firestore 사용자 정보 저장 실패 (uid: {uid}): {e}", exc_info=True)
            raise AuthError('auth/unknown', '회원가입에 실패했습니다.')

        logging.info(f"회원가입 완료: {uid}")
        self._emit(user)
        return user

    def sign_in(self, email: str, password: str) -> User:
        uid = self.identity.verify_password(email, password)
        user = self.load_user(uid, email=email)
        logging.info(f"로그인 성공: {uid}")
        self._emit(user)
        return user

    def sign_out(self, access_jti: str, access_exp: int, refresh_jti: str, refresh_exp: int):
        """Access 토큰과 Refresh 토큰을 모두 Blocklist에 추가합니다."""
        access_expires = datetime.fromtimestamp(access_exp, tz=timezone.utc)
        refresh_expires = datetime.fromtimestamp(refresh_exp, tz=timezone.utc)
        self.add_token_to_blocklist(access_jti, access_expires)
        self.add_token_to_blocklist(refresh_jti, refresh_expires)
        logging.info(f"사용자 로그아웃 처리 완료. JTI: {access_jti[:8]}..., {refresh_jti[:8]}...")
        self._emit(None)

    def load_user(self, uid: str, email: Optional[str] = None) -> User:
        """
        uid에 해당하는 사용자 정보를 읽습니다.
        'users' 문서가 없거나 읽기에 실패하면 공급자 정보(없으면 '사용자')로 대체합니다.
        """
        try:
            data = self.record_store.get_document(USERS, uid)
            if data:
                user = User.from_dict(uid, data)
                if email and not user.email:
                    user.email = email
                return user
            logging.info(f"Firestore에서 사용자 정보를 찾을 수 없음 (uid: {uid})")
        except Exception as e:
            logging.error(f"사용자 정보 가져오기 오류 (uid: {uid}): {e}", exc_info=True)
        return self._default_user(uid, email)

    def _default_user(self, uid: str, email: Optional[str]) -> User:
        profile = None
        try:
            profile = self.identity.get_user(uid)
        except Exception as e:
            logging.warning(f"공급자 프로필 조회 실패 (uid: {uid}): {e}")
        profile = profile or {}
        return User(
            uid=uid,
            email=email or profile.get('email') or '',
            display_name=profile.get('display_name') or DEFAULT_DISPLAY_NAME,
            photo_url=profile.get('photo_url'),
            created_at=DateTimeUtils.now()
        )

    # --- Blocklist 관련 로직 ---
    def add_token_to_blocklist(self, jti: str, expires: datetime):
        """토큰의 jti를 만료 시간과 함께 Firestore에 저장합니다."""
        try:
            self.record_store.create_document(REVOKED_TOKENS, {
                'revokedAt': DateTimeUtils.now(),
                'expiresAt': expires,
            }, document_id=jti)
        except Exception as e:
            logging.error(f"Blocklist 토큰 추가 실패 (jti: {jti}): {e}")

    def is_token_revoked(self, jwt_payload: dict) -> bool:
        """jti를 이용해 해당 토큰이 무효화 목록에 있는지 확인합니다."""
        jti = jwt_payload.get('jti')
        if not jti:
            return False
        return self.record_store.get_document(REVOKED_TOKENS, jti) is not None
