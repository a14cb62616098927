# jmt/api/spot_difference/test_spot_difference.py
"""
틀린그림 찾기 엔진/렌더러/랭킹 테스트

사용법: python -m pytest jmt/api/spot_difference/test_spot_difference.py -v
"""

import io
import random
import threading
from datetime import datetime, timezone

import pytest
from PIL import Image

from jmt.api.spot_difference.engine import (
    Difference, GameSessionStore, SpotTheDifferenceGame, format_time, generate_differences, rank_records
)
from jmt.api.spot_difference.renderer import BLANK_CANVAS_SIZE, render_difference_image, to_png_bytes
from jmt.api.spot_difference.services import SPOT_THE_DIFFERENCE_RECORDS, SpotTheDifferenceService
from jmt.models.game_record import GameRecord
from jmt.models.memory import Memory
from jmt.models.user import User
from jmt.services.feed_synchronizer import FeedSynchronizer, MEMORIES


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _game(differences, clock):
    return SpotTheDifferenceGame('m1', 'https://storage.test/a.png', differences, clock=clock, render_seed=1)


def _png(size=(200, 100)):
    buffer = io.BytesIO()
    Image.new('RGB', size, 'black').save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.mark.parametrize("seed", range(25))
def test_generate_differences_five_markers_in_range(seed):
    differences = generate_differences(random.Random(seed))
    assert len(differences) == 5
    for d in differences:
        assert 10 <= d.x <= 90
        assert 10 <= d.y <= 90
        assert d.side in ('left', 'right')
        assert d.found is False


def test_alternating_side_mode():
    differences = generate_differences(random.Random(0), mode='alternating')
    assert [d.side for d in differences] == ['left', 'right', 'left', 'right', 'left']


def test_start_picks_memory_with_images():
    memories = [
        Memory(id='text', user_id='u1', user_name='Ann', content='no photo'),
        Memory(id='photo', user_id='u1', user_name='Ann', content='photo',
               images=['https://storage.test/1.png', 'https://storage.test/2.png']),
    ]
    game = SpotTheDifferenceGame.start(memories, random.Random(3))
    assert game.memory_id == 'photo'
    assert game.image_url in memories[1].images
    assert len(game.differences) == 5

    with pytest.raises(ValueError):
        SpotTheDifferenceGame.start(memories[:1], random.Random(3))


def test_hit_requires_same_side_and_strict_box():
    clock = FakeClock()
    game = _game([Difference(50, 50, 'left')], clock)

    assert game.click('right', 50, 50).hit is False
    assert game.click('left', 58, 50).hit is False  # 경계(8)는 오답
    result = game.click('left', 57.9, 42.1)
    assert result.hit is True
    assert result.difference.found is True
    # 이미 찾은 곳은 다시 맞출 수 없습니다.
    assert game.click('left', 50, 50).hit is False


def test_miss_mark_visible_for_one_second():
    clock = FakeClock()
    game = _game([Difference(50, 50, 'left')], clock)

    result = game.click('left', 10, 10)
    assert (result.miss_mark.x, result.miss_mark.y) == (10, 10)
    assert game.visible_miss_mark() is not None

    clock.now += 0.999
    assert game.visible_miss_mark() is not None
    clock.now += 0.002
    assert game.visible_miss_mark() is None


def test_finding_all_five_completes_and_stops_timer():
    clock = FakeClock()
    differences = [Difference(20 + i * 10, 50, 'left' if i % 2 else 'right') for i in range(5)]
    game = _game(differences, clock)

    for i, d in enumerate(differences):
        clock.now += 3
        result = game.click(d.side, d.x, d.y)
        assert result.hit
        assert result.just_completed == (i == 4)

    assert game.completed is True
    assert game.found_count == 5
    assert game.elapsed_seconds == 15

    clock.now += 60
    assert game.elapsed_seconds == 15
    ignored = game.click('left', 0, 0)
    assert ignored.ignored is True


def test_invalid_side_rejected():
    game = _game([Difference(50, 50, 'left')], FakeClock())
    with pytest.raises(ValueError):
        game.click('top', 50, 50)


def test_rank_records_found_count_then_time():
    records = [
        GameRecord(user_name='slow', time=90, found_count=5),
        GameRecord(user_name='partial', time=10, found_count=3),
        GameRecord(user_name='fast', time=30, found_count=5),
    ]
    assert [r.user_name for r in rank_records(records)] == ['fast', 'slow', 'partial']
    assert [r.user_name for r in rank_records(records, limit=1)] == ['fast']


@pytest.mark.parametrize("seconds, text", [(0, '0:00'), (9, '0:09'), (75, '1:15'), (600, '10:00')])
def test_format_time(seconds, text):
    assert format_time(seconds) == text


def test_game_session_store_one_game_per_user():
    store = GameSessionStore()
    first = _game([], FakeClock())
    second = _game([], FakeClock())
    store.put('u1', first)
    store.put('u1', second)
    assert store.get('u1') is second
    store.discard('u1')
    assert store.get('u1') is None


def test_renderer_draws_only_on_requested_side():
    differences = [Difference(25, 50, 'left'), Difference(75, 50, 'right')]
    source = _png()

    left = render_difference_image(source, differences, 'left', random.Random(1))

    assert left.size == (200, 100)
    assert left.getpixel((50, 50)) != (0, 0, 0)
    assert left.getpixel((150, 50)) == (0, 0, 0)


def test_renderer_falls_back_to_blank_canvas():
    for source in (None, b'not an image'):
        image = render_difference_image(source, [], 'right', random.Random(1))
        assert image.size == BLANK_CANVAS_SIZE
        assert image.getpixel((0, 0)) == (255, 255, 255)
    assert to_png_bytes(image).startswith(b'\x89PNG')


@pytest.fixture
def game_service(record_store):
    record_store.create_document(MEMORIES, {
        'userId': 'u1', 'userName': 'Ann', 'content': 'photo', 'images': ['https://storage.test/1.png'],
        'createdAt': datetime(2024, 5, 1, tzinfo=timezone.utc),
    }, document_id='m1')
    clock = FakeClock()
    service = SpotTheDifferenceService(
        record_store, FeedSynchronizer(record_store), rng=random.Random(5), clock=clock,
        fetch_image=lambda url, timeout: _png()
    )
    service.test_clock = clock
    return service


def test_completing_game_appends_one_record(game_service, record_store):
    ann = User(uid='u1', email='a@x.com', display_name='')
    game = game_service.start_game(ann)

    for d in game.differences:
        game_service.test_clock.now += 2
        game_service.click(ann, d.side, d.x, d.y)
    game_service.click(ann, 'left', 0, 0)

    records = record_store.fetch_collection(SPOT_THE_DIFFERENCE_RECORDS)
    assert len(records) == 1
    assert records[0]['userName'] == '익명'
    assert records[0]['time'] == 10
    assert records[0]['foundCount'] == 5
    assert game_service.get_records()[0].time == 10



def test_simultaneous_final_hits_save_one_record(game_service, record_store):
    ann = User(uid='u1', email='a@x.com', display_name='Ann')
    game = game_service.start_game(ann)
    game.differences[:] = [Difference(15 + i * 17, 50, 'left') for i in range(5)]
    barrier = threading.Barrier(len(game.differences))
    results = []

    def hit(difference):
        barrier.wait(timeout=5)
        results.append(game_service.click(ann, difference.side, difference.x, difference.y))

    threads = [threading.Thread(target=hit, args=(d,)) for d in list(game.differences)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert game.completed
    assert sum(1 for r in results if r.just_completed) == 1
    assert len(record_store.fetch_collection(SPOT_THE_DIFFERENCE_RECORDS)) == 1


def test_rendered_image_is_stable_per_side(game_service):
    ann = User(uid='u1', email='a@x.com', display_name='Ann')
    game_service.start_game(ann)
    first = game_service.render_image(ann, 'right')
    assert first == game_service.render_image(ann, 'right')
    assert first.startswith(b'\x89PNG')


def test_spot_difference_routes(client, auth_headers, app):
    app.services['spot_difference'].fetch_image = lambda url, timeout: None

    assert client.post('/api/spot-difference/games', headers=auth_headers).status_code == 409
    assert client.get('/api/spot-difference/games/current', headers=auth_headers).status_code == 404

    client.post('/api/memories', headers=auth_headers, data={
        'content': 'photo', 'images': [(io.BytesIO(_png()), 'a.png', 'image/png')],
    }, content_type='multipart/form-data')

    started = client.post('/api/spot-difference/games', headers=auth_headers)
    assert started.status_code == 201
    state = started.get_json()
    assert state['foundCount'] == 0 and state['totalCount'] == 5
    assert state['found'] == []

    miss = client.post('/api/spot-difference/games/current/clicks', headers=auth_headers,
                       json={'side': 'left', 'x': 0, 'y': 0}).get_json()
    assert miss['hit'] is False
    assert miss['missMark'] == {'x': 0, 'y': 0}
    assert miss['missMarkDurationMs'] == 1000

    bad = client.post('/api/spot-difference/games/current/clicks', headers=auth_headers,
                      json={'side': 'up', 'x': 0, 'y': 0})
    assert bad.status_code == 400

    image = client.get('/api/spot-difference/games/current/images/left.png', headers=auth_headers)
    assert image.status_code == 200
    assert image.mimetype == 'image/png'

    records = client.get('/api/spot-difference/records', headers=auth_headers)
    assert records.get_json() == {'records': []}


def test_spot_difference_routes_absent_when_disabled(record_store, storage, identity):
    from jmt import create_app

    app = create_app('testing', record_store=record_store, storage=storage, identity=identity,
                     config_overrides={'SPOT_DIFFERENCE_ENABLED': False})
    response = app.test_client().post('/api/spot-difference/games')
    assert response.status_code == 404
    assert 'spot_difference' not in app.services
    app.shutdown()
