# jmt/api/spot_difference/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app, Response
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from jmt.api.spot_difference.engine import (
    DIFFERENCE_COUNT, MISS_MARK_DURATION_MS, SIDES, SpotTheDifferenceGame, format_time
)
from jmt.api.spot_difference.schemas import (
    ClickRequestSchema, ClickResultSchema, GameRecordSchema, GameStateSchema
)
from jmt.core.security import current_user

spot_difference_bp = Blueprint('spot_difference_bp', __name__)


def _game_state(game: SpotTheDifferenceGame):
    miss_mark = game.visible_miss_mark()
    return GameStateSchema().dump({
        'memoryId': game.memory_id,
        'imageUrl': game.image_url,
        'foundCount': game.found_count,
        'totalCount': DIFFERENCE_COUNT,
        'found': [d.to_dict() for d in game.differences if d.found],
        'completed': game.completed,
        'elapsedSeconds': game.elapsed_seconds,
        'elapsedTime': format_time(game.elapsed_seconds),
        'missMark': {'x': miss_mark.x, 'y': miss_mark.y} if miss_mark else None,
    })


@spot_difference_bp.route('/games', methods=['POST'])
@jwt_required()
def start_game():
    """추억 사진 하나로 새 게임을 시작합니다."""
    game_service = current_app.services['spot_difference']
    try:
        game = game_service.start_game(current_user())
        return jsonify(_game_state(game)), 201
    except ValueError as e:
        return jsonify({"error_code": "NO_GAME_IMAGES", "message": str(e)}), 409


@spot_difference_bp.route('/games/current', methods=['GET'])
@jwt_required()
def get_current_game():
    game_service = current_app.services['spot_difference']
    try:
        return jsonify(_game_state(game_service.current_game(current_user()))), 200
    except LookupError as e:
        return jsonify({"error_code": "GAME_NOT_FOUND", "message": str(e)}), 404


@spot_difference_bp.route('/games/current/clicks', methods=['POST'])
@jwt_required()
def click():
    """
    이미지 클릭을 판정합니다.
    - 정답이면 해당 틀린 부분을 반환하고, 다섯 번째 정답이면 기록을 저장합니다.
    - 오답이면 1초 동안 보여줄 X 표시 위치를 반환합니다.
    """
    game_service = current_app.services['spot_difference']
    try:
        data = ClickRequestSchema().load(request.get_json() or {})
        result = game_service.click(current_user(), data['side'], data['x'], data['y'])
        return jsonify(ClickResultSchema().dump({
            'hit': result.hit,
            'foundCount': result.found_count,
            'completed': result.completed,
            'ignored': result.ignored,
            'difference': result.difference.to_dict() if result.difference else None,
            'missMark': {'x': result.miss_mark.x, 'y': result.miss_mark.y} if result.miss_mark else None,
            'missMarkDurationMs': MISS_MARK_DURATION_MS,
        })), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except LookupError as e:
        return jsonify({"error_code": "GAME_NOT_FOUND", "message": str(e)}), 404


@spot_difference_bp.route('/games/current/images/<string:side>.png', methods=['GET'])
@jwt_required()
def get_game_image(side: str):
    if side not in SIDES:
        return jsonify({"error_code": "INVALID_SIDE", "message": "left 또는 right만 가능합니다."}), 404
    game_service = current_app.services['spot_difference']
    try:
        png = game_service.render_image(current_user(), side)
        return Response(png, mimetype='image/png')
    except LookupError as e:
        return jsonify({"error_code": "GAME_NOT_FOUND", "message": str(e)}), 404


@spot_difference_bp.route('/records', methods=['GET'])
@jwt_required()
def get_records():
    """최고 기록 (찾은 개수 내림차순, 시간 오름차순)"""
    game_service = current_app.services['spot_difference']
    try:
        records = game_service.get_records()
        return jsonify({
            "records": GameRecordSchema(many=True).dump([
                {
                    'id': record.id,
                    'rank': index + 1,
                    'user_name': record.user_name,
                    'time': record.time,
                    'formattedTime': format_time(record.time),
                    'found_count': record.found_count,
                    'created_at': record.created_at,
                }
                for index, record in enumerate(records)
            ])
        }), 200
    except Exception as e:
        logging.error(f"랭킹 가져오기 오류: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "랭킹을 불러오지 못했습니다."}), 500
