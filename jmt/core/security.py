# jmt/core/security.py
from typing import Optional

from flask import Flask, current_app, g, jsonify
from flask_jwt_extended import JWTManager, get_jwt_identity

from jmt.models.user import User


def init_jwt(app: Flask) -> JWTManager:
    """JWTManager를 만들고 토큰 오류 응답과 Blocklist 검사를 등록합니다."""
    jwt = JWTManager(app)

    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload: dict) -> bool:
        return current_app.services['sessions'].is_token_revoked(jwt_payload)

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({"error_code": "TOKEN_EXPIRED", "message": "토큰이 만료되었습니다."}), 401

    @jwt.revoked_token_loader
    def revoked_token_callback(jwt_header, jwt_payload):
        return jsonify({"error_code": "TOKEN_REVOKED", "message": "로그아웃된 토큰입니다."}), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(reason):
        return jsonify({"error_code": "INVALID_TOKEN", "message": reason}), 401

    @jwt.unauthorized_loader
    def missing_token_callback(reason):
        return jsonify({"error_code": "AUTHORIZATION_REQUIRED", "message": "로그인이 필요합니다."}), 401

    return jwt


def current_user() -> Optional[User]:
    """
    현재 요청의 JWT identity(uid)에 해당하는 사용자를 반환합니다.
    요청당 한 번만 조회하여 g에 보관합니다.
    """
    uid = get_jwt_identity()
    if not uid:
        return None
    if getattr(g, 'session_user', None) is None or g.session_user.uid != uid:
        g.session_user = current_app.services['sessions'].load_user(uid)
    return g.session_user
