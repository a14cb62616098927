# jmt/api/comments/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from jmt.api.comments.schemas import CommentCreateSchema, CommentResponseSchema
from jmt.core.security import current_user

comments_bp = Blueprint('comments_bp', __name__)


@comments_bp.route('/memories/<string:memory_id>/comments', methods=['POST'])
@jwt_required()
def add_comment(memory_id: str):
    """
    추억에 댓글을 추가합니다.
    - 성공 시 생성된 댓글을 201과 함께 반환하고, 피드는 다시 읽힙니다.
    """
    comment_service = current_app.services['comments']
    try:
        data = CommentCreateSchema().load(request.get_json() or {})
        comment = comment_service.add_comment(current_user(), memory_id, data['content'])
        return jsonify(CommentResponseSchema().dump(comment)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except LookupError as e:
        return jsonify({"error_code": "MEMORY_NOT_FOUND", "message": str(e)}), 404
    except ValueError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"댓글 작성 오류 (memory_id: {memory_id}): {e}", exc_info=True)
        return jsonify({"error_code": "COMMENT_CREATION_FAILED", "message": "댓글 작성에 실패했습니다."}), 500


@comments_bp.route('/memories/<string:memory_id>/comments/<string:comment_id>', methods=['DELETE'])
@jwt_required()
def delete_comment(memory_id: str, comment_id: str):
    """댓글을 삭제합니다. (작성자 본인만 가능)"""
    comment_service = current_app.services['comments']
    try:
        comment_service.delete_comment(current_user(), memory_id, comment_id)
        return Response(status=204)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except LookupError as e:
        return jsonify({"error_code": "NOT_FOUND", "message": str(e)}), 404
