import json

import pytest
import redis


def test_round_barbell_with_defaults(client):
    resp = client.post('/v1/plates/round', json={'weight': 137})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['rounded_weight'] == 137.5
    assert data['unit'] == 'lbs'
    assert data['breakdown']['per_side'] == [45, 1.25]
    assert data['breakdown']['display'] == "137.5 lbs = 45 bar + 45 + 1.25 each side"

def test_round_dumbbell_has_no_breakdown(client):
    resp = client.post('/v1/plates/round', json={'weight': 27.4, 'equipment_type': 'dumbbell_pair'})
    data = resp.get_json()
    assert data['rounded_weight'] == 27.0
    assert 'breakdown' not in data

def test_round_uses_saved_plate_config(client, fake_redis):
    fake_redis.set('plate_config:user-1', json.dumps({'unit': 'kg', 'bar_weight': 20, 'plates': [20, 10, 5, 2.5]}))
    resp = client.post('/v1/plates/round', json={'weight': 61, 'user_id': 'user-1'})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['unit'] == 'kg'
    assert data['rounded_weight'] == 60.0
    assert data['breakdown']['display'] == "60 kg = 20 bar + 20 each side"

@pytest.mark.parametrize("body", [
    {},
    {'weight': -5},
    {'weight': 'heavy'},
    {'weight': 100, 'equipment_type': 'kettlebell'},
    {'weight': 100, 'plates': [0, 10]},
    {'weight': 100, 'bar_weight': -1},
    {'weight': 100, 'unit': 'stone'},
    {'weight': 1e20},
    {'weight': 3000.5},
    {'weight': 100, 'plates': [0.0001]},
    {'weight': 100, 'plates': [2.5] * 21},
])
def test_round_rejects_bad_input(client, body):
    assert client.post('/v1/plates/round', json=body).status_code == 400

@pytest.mark.parametrize("path,body", [
    ('/v1/plates/round', '{"weight": Infinity}'),
    ('/v1/plates/round', '{"weight": NaN}'),
    ('/v1/plates/round', '{"weight": 100, "bar_weight": Infinity}'),
    ('/v1/plates/breakdown', '{"weight": Infinity}'),
    ('/v1/plates/breakdown', '{"weight": 100, "plates": [Infinity]}'),
])
def test_non_finite_numbers_are_rejected(client, path, body):
    resp = client.post(path, data=body, content_type='application/json')
    assert resp.status_code == 400

def test_round_heavy_total(client):
    data = client.post('/v1/plates/round', json={'weight': 2000}).get_json()
    assert data['rounded_weight'] == 2000.0
    assert data['breakdown']['per_side'] == [45] * 21 + [25, 5, 2.5]

def test_round_at_weight_cap(client):
    resp = client.post('/v1/plates/round', json={'weight': 3000})
    assert resp.status_code == 200
    assert resp.get_json()['rounded_weight'] == 3000.0

def test_breakdown_rejects_weight_over_cap(client):
    assert client.post('/v1/plates/breakdown', json={'weight': 1e20}).status_code == 400

def test_breakdown(client):
    resp = client.post('/v1/plates/breakdown', json={'weight': 225})
    data = resp.get_json()
    assert data['loadable'] is True
    assert data['per_side'] == [45, 45]
    assert data['display'] == "225 lbs = 45 bar + 45 + 45 each side"

def test_breakdown_not_loadable(client):
    resp = client.post('/v1/plates/breakdown', json={'weight': 100, 'plates': [45]})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['loadable'] is False
    assert data['per_side'] is None

def test_plate_config_defaults(client, fake_redis):
    resp = client.get('/v1/users/user-9/plate-config')
    assert resp.status_code == 200
    assert resp.get_json() == {
        'user_id': 'user-9', 'bar_weight': 45.0, 'plates': [45, 25, 10, 5, 2.5, 1.25], 'unit': 'lbs',
    }
    assert client.get('/v1/users/user-9/plate-config?unit=kg').get_json()['bar_weight'] == 20.0

def test_plate_config_put_then_get(client, fake_redis):
    resp = client.put('/v1/users/user-1/plate-config', json={'unit': 'kg', 'bar_weight': 15, 'plates': [20, 10]})
    assert resp.status_code == 200
    assert resp.get_json()['bar_weight'] == 15.0

    data = client.get('/v1/users/user-1/plate-config').get_json()
    assert data['unit'] == 'kg'
    assert data['bar_weight'] == 15.0
    assert data['plates'] == [20, 10]

@pytest.mark.parametrize("body", [
    {'unit': 'stone'},
    {'bar_weight': -1},
    {'plates': []},
    {'plates': ['45']},
])
def test_plate_config_put_rejects_bad_input(client, fake_redis, body):
    assert client.put('/v1/users/user-1/plate-config', json=body).status_code == 400
    assert 'plate_config:user-1' not in fake_redis.data


class BrokenRedis:
    def get(self, key):
        raise redis.exceptions.ConnectionError("connection refused")


def test_state_store_outage_returns_503(client, monkeypatch):
    monkeypatch.setattr('overload.blueprints.plates.get_redis', lambda: BrokenRedis())
    resp = client.get('/v1/users/user-1/plate-config')
    assert resp.status_code == 503
    assert resp.get_json()['error'] == "State store unavailable"
