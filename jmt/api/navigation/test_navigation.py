# jmt/api/navigation/test_navigation.py
"""
경로 판정/사이드바 테스트

사용법: python -m pytest jmt/api/navigation/test_navigation.py -v
"""

import pytest

from jmt.api.navigation.services import normalize_path, resolve_route, route_table, sidebar_menu


@pytest.mark.parametrize("raw, expected", [
    ('', '/'),
    ('#/lotto', '/lotto'),
    ('lotto/', '/lotto'),
    ('/coffee-lottery?tab=1', '/coffee-lottery'),
])
def test_normalize_path(raw, expected):
    assert normalize_path(raw) == expected


@pytest.mark.parametrize("path, authenticated, expected", [
    ('/lotto', True, '/lotto'),
    ('/lotto', False, '/login'),
    ('/register', False, '/register'),
    ('/login', True, '/login'),
    ('/nowhere', True, '/'),
    ('/nowhere', False, '/login'),
    ('/spot-difference', True, '/spot-difference'),
])
def test_resolve_route(path, authenticated, expected):
    assert resolve_route(path, authenticated) == expected


def test_disabled_game_route_falls_back_to_feed():
    assert '/spot-difference' not in route_table(False)
    assert resolve_route('/spot-difference', True, spot_difference_enabled=False) == '/'


def test_sidebar_marks_active_item():
    menu = sidebar_menu('/coffee-lottery')
    assert [item['active'] for item in menu] == [False, False, True, False]
    assert menu[0]['label'] == '추억 피드'
    assert len(sidebar_menu('/', spot_difference_enabled=False)) == 3


def test_navigation_route_without_token(client):
    body = client.get('/api/navigation?path=/lotto').get_json()
    assert body['resolvedPath'] == '/login'
    assert body['redirect'] is True
    assert body['authenticated'] is False
    assert body['menu'] == [] and body['actions'] == []


def test_navigation_route_with_token(client, auth_headers):
    body = client.get('/api/navigation?path=/lotto', headers=auth_headers).get_json()
    assert body['resolvedPath'] == '/lotto'
    assert body['redirect'] is False
    assert [item['path'] for item in body['menu'] if item['active']] == ['/lotto']
    assert [action['key'] for action in body['actions']] == ['profile', 'logout']
