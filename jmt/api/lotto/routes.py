# jmt/api/lotto/routes.py
from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from jmt.api.lotto.services import generate_numbers, number_color

lotto_bp = Blueprint('lotto_bp', __name__)


@lotto_bp.route('/draw', methods=['POST'])
@jwt_required()
def draw_numbers():
    """이번주 로또 번호 추천. 서버에 아무것도 저장하지 않습니다."""
    numbers = generate_numbers()
    return jsonify({
        "numbers": [{"number": n, "color": number_color(n)} for n in numbers]
    }), 200
