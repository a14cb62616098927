# jmt/services/identity_service.py

import logging
from typing import Any, Dict, Optional

import requests
from flask import Flask
from firebase_admin import auth as firebase_auth

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"

# 공급자 오류 코드 -> 사용자에게 보여줄 메시지
AUTH_ERROR_MESSAGES = {
    'auth/email-already-in-use': '이미 사용 중인 이메일입니다.',
    'auth/weak-password': '비밀번호가 너무 약합니다.',
    'auth/invalid-email': '유효하지 않은 이메일 형식입니다.',
    'auth/operation-not-allowed': '이메일/비밀번호 로그인이 활성화되지 않았습니다.',
    'auth/invalid-credential': '이메일 또는 비밀번호가 올바르지 않습니다.',
    'auth/user-disabled': '비활성화된 계정입니다.',
    'auth/too-many-requests': '잠시 후 다시 시도해주세요.',
}
SIGN_UP_FAILED = '회원가입에 실패했습니다.'
SIGN_IN_FAILED = '로그인에 실패했습니다.'

# Identity Toolkit REST 오류 메시지 -> 공급자 오류 코드
_REST_ERROR_CODES = {
    'EMAIL_NOT_FOUND': 'auth/invalid-credential',
    'INVALID_PASSWORD': 'auth/invalid-credential',
    'INVALID_LOGIN_CREDENTIALS': 'auth/invalid-credential',
    'INVALID_EMAIL': 'auth/invalid-email',
    'USER_DISABLED': 'auth/user-disabled',
    'OPERATION_NOT_ALLOWED': 'auth/operation-not-allowed',
    'PASSWORD_LOGIN_DISABLED': 'auth/operation-not-allowed',
    'TOO_MANY_ATTEMPTS_TRY_LATER': 'auth/too-many-requests',
}


class AuthError(Exception):
    """인증 공급자 오류. code는 공급자 오류 코드, message는 현지화된 안내 문구입니다."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    @classmethod
    def from_code(cls, code: str, fallback: str) -> "AuthError":
        return cls(code, AUTH_ERROR_MESSAGES.get(code, fallback))


class IdentityService:
    """
    Firebase Authentication과의 통신을 담당하는 서비스 클래스입니다.
    - 계정 생성/프로필 수정: Admin SDK
    - 이메일/비밀번호 검증: Identity Toolkit REST API
    """

    def __init__(self):
        self.api_key: Optional[str] = None
        self.timeout = 10

    def init_app(self, app: Flask):
        self.api_key = app.config.get('FIREBASE_WEB_API_KEY')
        self.timeout = app.config.get('IDENTITY_REQUEST_TIMEOUT_SECONDS', 10)
        if not self.api_key:
            logging.warning("FIREBASE_WEB_API_KEY가 설정되지 않아 이메일/비밀번호 로그인이 실패합니다.")

    def sign_up(self, email: str, password: str, display_name: str) -> str:
        """새 계정을 만들고 uid를 반환합니다."""
        try:
            record = firebase_auth.create_user(email=email, password=password, display_name=display_name)
            logging.info(f"Firebase Auth 사용자 생성 성공: {record.uid}")
            return record.uid
        except firebase_auth.EmailAlreadyExistsError:
            raise AuthError.from_code('auth/email-already-in-use', SIGN_UP_FAILED)
        except ValueError as e:
            # Admin SDK는 형식 오류를 ValueError로 알립니다.
            logging.warning(f"회원가입 입력값 오류: {e}")
            code = 'auth/weak-password' if 'password' in str(e).lower() else 'auth/invalid-email'
            raise AuthError.from_code(code, SIGN_UP_FAILED)
        except Exception as e:
            logging.error(f"회원가입 오류 상세: {e}", exc_info=True)
            raise AuthError('auth/unknown', SIGN_UP_FAILED)

    def verify_password(self, email: str, password: str) -> str:
        """이메일/비밀번호를 검증하고 uid를 반환합니다."""
        if not self.api_key:
            raise AuthError.from_code('auth/operation-not-allowed', SIGN_IN_FAILED)
        try:
            response = requests.post(
                SIGN_IN_URL,
                params={'key': self.api_key},
                json={'email': email, 'password': password, 'returnSecureToken': True},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logging.error(f"로그인 요청 실패: {e}", exc_info=True)
            raise AuthError('auth/network-request-failed', SIGN_IN_FAILED)

        if response.status_code != 200:
            try:
                message = response.json().get('error', {}).get('message', '')
            except ValueError:
                message = ''
            # 'TOO_MANY_ATTEMPTS_TRY_LATER : ...' 처럼 부가 설명이 붙는 경우가 있습니다.
            code = _REST_ERROR_CODES.get(message.split(' ')[0], 'auth/unknown')
            logging.warning(f"로그인 실패 ({email}): {message}")
            raise AuthError.from_code(code, SIGN_IN_FAILED)

        return response.json()['localId']

    def update_profile(self, uid: str, display_name: Optional[str] = None,
                       photo_url: Optional[str] = None, remove_photo: bool = False) -> None:
        """공급자 측 프로필(displayName, photoURL)을 수정합니다."""
        changes: Dict[str, Any] = {}
        if display_name is not None:
            changes['display_name'] = display_name
        if remove_photo:
            changes['photo_url'] = firebase_auth.DELETE_ATTRIBUTE
        elif photo_url is not None:
            changes['photo_url'] = photo_url
        if not changes:
            return
        firebase_auth.update_user(uid, **changes)
        logging.info(f"Firebase Auth 프로필 업데이트 성공: {uid} ({', '.join(changes)})")

    def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        try:
            record = firebase_auth.get_user(uid)
        except firebase_auth.UserNotFoundError:
            return None
        return {
            'uid': record.uid,
            'email': record.email or '',
            'display_name': record.display_name,
            'photo_url': record.photo_url,
        }
