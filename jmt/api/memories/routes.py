# jmt/api/memories/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app, Response
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from jmt.api.memories.schemas import (
    MemoryFormSchema, MemoryQuerySchema, MemoryResponseSchema, LikeResponseSchema
)
from jmt.api.memories.services import ImageUpload, to_view
from jmt.core.security import current_user

memories_bp = Blueprint('memories_bp', __name__)


def _uploaded_images():
    """multipart의 'images' 필드를 ImageUpload 목록으로 변환합니다."""
    return [
        ImageUpload(filename=f.filename or 'image', data=f.read(), content_type=f.mimetype or '')
        for f in request.files.getlist('images')
        if f and f.filename
    ]


@memories_bp.route('', methods=['GET'])
@jwt_required()
def get_feed():
    """
    추억 피드를 조회합니다.
    - search: 내용/해시태그/작성자 이름 검색어
    - user: 작성자 이름 필터 ('all'이면 전체)
    """
    feed = current_app.services['feed']
    query = MemoryQuerySchema().load(request.args)
    viewer = current_user()

    feed.load()
    filtered = feed.filter(query['search'], query['user'])
    return jsonify({
        "memories": MemoryResponseSchema(many=True).dump(
            [to_view(memory, viewer.uid, index + 1) for index, memory in enumerate(filtered)]
        ),
        "authors": feed.authors(),
        "loading": feed.loading
    }), 200


@memories_bp.route('', methods=['POST'])
@jwt_required()
def create_memory():
    memory_service = current_app.services['memories']
    user = current_user()
    try:
        data = MemoryFormSchema().load(request.form)
        memory = memory_service.create_memory(user, data['content'], data['hashtags'], _uploaded_images())
        return jsonify(MemoryResponseSchema().dump(to_view(memory, user.uid))), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"메모리 생성 오류: {e}", exc_info=True)
        return jsonify({"error_code": "MEMORY_CREATION_FAILED", "message": "메모리 생성에 실패했습니다."}), 500


@memories_bp.route('/<string:memory_id>', methods=['PATCH'])
@jwt_required()
def edit_memory(memory_id: str):
    memory_service = current_app.services['memories']
    user = current_user()
    keep_images = request.form.getlist('keep_images') if 'keep_images' in request.form else None
    try:
        data = MemoryFormSchema().load(request.form)
        memory = memory_service.edit_memory(
            user, memory_id, data['content'], data['hashtags'], keep_images, _uploaded_images()
        )
        return jsonify(MemoryResponseSchema().dump(to_view(memory, user.uid))), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except LookupError as e:
        return jsonify({"error_code": "MEMORY_NOT_FOUND", "message": str(e)}), 404
    except ValueError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"메모리 수정 오류 (memory_id: {memory_id}): {e}", exc_info=True)
        return jsonify({"error_code": "MEMORY_UPDATE_FAILED", "message": "메모리 수정에 실패했습니다."}), 500


@memories_bp.route('/<string:memory_id>', methods=['DELETE'])
@jwt_required()
def delete_memory(memory_id: str):
    memory_service = current_app.services['memories']
    try:
        memory_service.delete_memory(current_user(), memory_id)
        return Response(status=204)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except LookupError as e:
        return jsonify({"error_code": "MEMORY_NOT_FOUND", "message": str(e)}), 404


@memories_bp.route('/<string:memory_id>/like', methods=['POST'])
@jwt_required()
def toggle_like(memory_id: str):
    """좋아요를 누르거나 취소합니다. 저장 실패는 로그로만 남고 화면 값은 원래대로 돌아갑니다."""
    memory_service = current_app.services['memories']
    try:
        result = memory_service.toggle_like(current_user(), memory_id)
        return jsonify(LikeResponseSchema().dump(result)), 200
    except LookupError as e:
        return jsonify({"error_code": "MEMORY_NOT_FOUND", "message": str(e)}), 404
