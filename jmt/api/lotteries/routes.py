# jmt/api/lotteries/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from jmt.api.lotteries.schemas import LotteryCreateSchema, LotteryResponseSchema
from jmt.api.lotteries.services import LotteryStateError, to_view
from jmt.core.security import current_user

lotteries_bp = Blueprint('lotteries_bp', __name__)


@lotteries_bp.route('', methods=['GET'])
@jwt_required()
def get_lotteries():
    """커피 추첨 목록 (최신순)"""
    board = current_app.services['lottery_board']
    viewer_id = get_jwt_identity()
    try:
        lotteries = board.lotteries()
        return jsonify({
            "lotteries": LotteryResponseSchema(many=True).dump([to_view(lottery, viewer_id) for lottery in lotteries])
        }), 200
    except Exception as e:
        logging.error(f"커피 추첨 목록 조회 오류: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "추첨 목록을 불러오지 못했습니다."}), 500


@lotteries_bp.route('', methods=['POST'])
@jwt_required()
def create_lottery():
    lottery_service = current_app.services['lotteries']
    try:
        data = LotteryCreateSchema().load(request.get_json() or {})
        lottery = lottery_service.create_lottery(data['title'], data['winnerCount'])
        return jsonify(LotteryResponseSchema().dump(to_view(lottery, get_jwt_identity()))), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "message": str(e)}), 400


@lotteries_bp.route('/<string:lottery_id>/join', methods=['POST'])
@jwt_required()
def join_lottery(lottery_id: str):
    lottery_service = current_app.services['lotteries']
    user = current_user()
    try:
        lottery = lottery_service.join(user, lottery_id)
        return jsonify(LotteryResponseSchema().dump(to_view(lottery, user.uid))), 200
    except LotteryStateError as e:
        return jsonify({"error_code": "LOTTERY_CLOSED", "message": str(e)}), 409
    except LookupError as e:
        return jsonify({"error_code": "LOTTERY_NOT_FOUND", "message": str(e)}), 404


@lotteries_bp.route('/<string:lottery_id>/leave', methods=['POST'])
@jwt_required()
def leave_lottery(lottery_id: str):
    lottery_service = current_app.services['lotteries']
    user = current_user()
    try:
        lottery = lottery_service.leave(user, lottery_id)
        return jsonify(LotteryResponseSchema().dump(to_view(lottery, user.uid))), 200
    except LotteryStateError as e:
        return jsonify({"error_code": "LOTTERY_CLOSED", "message": str(e)}), 409
    except LookupError as e:
        return jsonify({"error_code": "LOTTERY_NOT_FOUND", "message": str(e)}), 404


@lotteries_bp.route('/<string:lottery_id>/draw', methods=['POST'])
@jwt_required()
def draw_lottery(lottery_id: str):
    """
    당첨자를 추첨합니다.
    - 이미 종료되었거나 참가자가 부족하면 409
    - 동시에 여러 번 요청되면 먼저 반영된 한 번만 성공합니다.
    """
    lottery_service = current_app.services['lotteries']
    try:
        lottery = lottery_service.draw(lottery_id)
        return jsonify(LotteryResponseSchema().dump(to_view(lottery, get_jwt_identity()))), 200
    except LotteryStateError as e:
        return jsonify({"error_code": "LOTTERY_NOT_DRAWABLE", "message": str(e)}), 409
    except LookupError as e:
        return jsonify({"error_code": "LOTTERY_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"추첨 오류 (lottery_id: {lottery_id}): {e}", exc_info=True)
        return jsonify({"error_code": "LOTTERY_DRAW_FAILED", "message": "추첨에 실패했습니다."}), 500


@lotteries_bp.route('/<string:lottery_id>', methods=['DELETE'])
@jwt_required()
def delete_lottery(lottery_id: str):
    lottery_service = current_app.services['lotteries']
    try:
        lottery_service.delete_lottery(lottery_id)
        return Response(status=204)
    except LookupError as e:
        return jsonify({"error_code": "LOTTERY_NOT_FOUND", "message": str(e)}), 404
