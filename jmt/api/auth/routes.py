# jmt/api/auth/routes.py

import logging
import jwt
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity
)
from marshmallow import ValidationError

from jmt.api.auth.schemas import RegisterSchema, LoginSchema, LogoutRequestSchema, UserResponseSchema
from jmt.core.security import current_user
from jmt.services.identity_service import AuthError

auth_bp = Blueprint('auth_bp', __name__)


def _session_response(user, status: int):
    identity = user.uid
    return jsonify({
        "access_token": create_access_token(identity=identity),
        "refresh_token": create_refresh_token(identity=identity),
        "user": UserResponseSchema().dump(user)
    }), status


@auth_bp.route('/register', methods=['POST'])
def register():
    """이메일/비밀번호 회원가입. 성공하면 곧바로 세션(토큰)을 발급합니다."""
    sessions = current_app.services['sessions']
    try:
        data = RegisterSchema().load(request.get_json() or {})
        user = sessions.sign_up(data['email'], data['password'], data['display_name'])
        return _session_response(user, 201)
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "message": str(e)}), 400
    except AuthError as e:
        status = 409 if e.code == 'auth/email-already-in-use' else 400
        return jsonify({"error_code": e.code, "message": e.message}), status


@auth_bp.route('/login', methods=['POST'])
def login():
    sessions = current_app.services['sessions']
    try:
        data = LoginSchema().load(request.get_json() or {})
        user = sessions.sign_in(data['email'], data['password'])
        return _session_response(user, 200)
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except AuthError as e:
        return jsonify({"error_code": e.code, "message": e.message}), 401


# --- 토큰 재발급 엔드포인트 ---
@auth_bp.route('/token/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_token():
    """유효한 Refresh Token으로 새로운 Access Token을 발급합니다."""
    current_user_id = get_jwt_identity()
    new_access_token = create_access_token(identity=current_user_id)
    return jsonify(access_token=new_access_token), 200


# --- 로그아웃 엔드포인트 ---
@auth_bp.route('/logout', methods=['POST'])
def logout():
    """로그아웃. 전달받은 Access/Refresh 토큰을 무효화 목록에 추가합니다."""
    sessions = current_app.services['sessions']
    try:
        data = LogoutRequestSchema().load(request.get_json() or {})
        secret_key = current_app.config['JWT_SECRET_KEY']
        algorithm = current_app.config.get('JWT_ALGORITHM', 'HS256')

        # 만료된 토큰도 로그아웃할 수 있도록 만료 검사는 하지 않습니다.
        decoded_access = jwt.decode(data['access_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})
        decoded_refresh = jwt.decode(data['refresh_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})

        sessions.sign_out(decoded_access['jti'], decoded_access['exp'],
                          decoded_refresh['jti'], decoded_refresh['exp'])
        return jsonify({"message": "로그아웃 되었습니다."}), 200

    except ValidationError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": e.messages}), 400
    except (jwt.PyJWTError, KeyError) as e:
        logging.error(f"JWT 해독 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INVALID_TOKEN", "message": "유효하지 않은 토큰입니다."}), 422


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    """현재 세션의 사용자 정보."""
    return jsonify(UserResponseSchema().dump(current_user())), 200
