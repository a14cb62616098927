# jmt/api/users/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from jmt.api.auth.schemas import UserResponseSchema
from jmt.api.memories.services import ImageUpload
from jmt.api.users.schemas import ProfileUpdateSchema, UserPublicResponseSchema
from jmt.core.security import current_user

users_bp = Blueprint('users_bp', __name__)


@users_bp.route('/me', methods=['PATCH'])
@jwt_required()
def update_my_profile():
    """
    현재 로그인된 사용자의 이름과 프로필 사진을 수정합니다.
    - display_name: 필수
    - photo: 새 프로필 사진 (선택)
    - remove_photo: 'true'면 사진 제거
    """
    user_service = current_app.services['users']
    user = current_user()
    try:
        data = ProfileUpdateSchema().load(request.form)
        file = request.files.get('photo')
        photo = None
        if file and file.filename:
            photo = ImageUpload(filename=file.filename, data=file.read(), content_type=file.mimetype or '')

        updated_user = user_service.update_profile(user, data['display_name'], photo, data['remove_photo'])
        return jsonify(UserResponseSchema().dump(updated_user)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"프로필 업데이트 오류 (uid: {user.uid}): {e}", exc_info=True)
        return jsonify({"error_code": "PROFILE_UPDATE_FAILED", "message": "프로필 업데이트에 실패했습니다."}), 500


@users_bp.route('/<string:user_id>', methods=['GET'])
@jwt_required(optional=True)
def get_user_profile(user_id: str):
    """특정 사용자의 공개 프로필 정보(추억 수 포함)를 조회합니다."""
    user_service = current_app.services['users']
    try:
        profile = user_service.get_user_profile(user_id)
        if not profile:
            return jsonify({"error_code": "USER_NOT_FOUND", "message": "사용자를 찾을 수 없습니다."}), 404
        return jsonify(UserPublicResponseSchema().dump(profile)), 200
    except Exception as e:
        logging.error(f"사용자 프로필 조회 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "PROFILE_FETCH_FAILED", "message": "프로필 조회 중 오류가 발생했습니다."}), 500
