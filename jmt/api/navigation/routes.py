# jmt/api/navigation/routes.py
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from jmt.api.navigation.services import (
    ACCOUNT_ACTIONS, normalize_path, resolve_route, route_table, sidebar_menu
)

navigation_bp = Blueprint('navigation_bp', __name__)


@navigation_bp.route('', methods=['GET'])
@jwt_required(optional=True)
def navigate():
    """
    클라이언트 경로를 판정합니다.
    - resolvedPath가 요청 경로와 다르면 redirect=True
    - 로그인 상태면 사이드바 메뉴(현재 위치 표시 포함)를 함께 내려줍니다.
    """
    enabled = current_app.config.get('SPOT_DIFFERENCE_ENABLED', True)
    authenticated = get_jwt_identity() is not None
    requested = normalize_path(request.args.get('path', '/'))
    resolved = resolve_route(requested, authenticated, enabled)

    return jsonify({
        "path": requested,
        "resolvedPath": resolved,
        "redirect": resolved != requested,
        "authenticated": authenticated,
        "routes": route_table(enabled),
        "menu": sidebar_menu(resolved, enabled) if authenticated else [],
        "actions": ACCOUNT_ACTIONS if authenticated else [],
    }), 200
