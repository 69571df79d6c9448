import pytest
from datetime import date, timedelta

from overload.stores import DeloadStateStore


def test_suggestion_low_streak(client):
    resp = client.post('/v1/deload/suggestion', json={
        'plan_type': 'hypertrophy', 'hit_rates': [80, 80, 80, 40, 45],
    })
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['should_deload'] is True
    assert data['show_banner'] is True
    assert "tough weeks" in data['reason']

def test_suggestion_from_sessions(client):
    resp = client.post('/v1/deload/suggestion', json={'plan_type': 'strength', 'sessions': [], 'weeks': 4})
    data = resp.get_json()
    assert data['hit_rates'] == [0, 0, 0, 0]
    assert data['should_deload'] is False
    assert data['reason'] is None

def test_suggestion_hidden_after_banner_dismissed(client, fake_redis):
    DeloadStateStore(fake_redis).dismiss_banner('user-1', date.today() - timedelta(days=2))
    resp = client.post('/v1/deload/suggestion', json={
        'plan_type': 'hypertrophy', 'hit_rates': [80, 80, 80, 40, 45], 'user_id': 'user-1',
    })
    data = resp.get_json()
    assert data['should_deload'] is True
    assert data['show_banner'] is False

def test_suggestion_hidden_during_deload_week(client, fake_redis):
    DeloadStateStore(fake_redis).start('user-1', '2026-10-18')
    resp = client.post('/v1/deload/suggestion', json={
        'plan_type': 'hypertrophy', 'hit_rates': [80, 80, 80, 40, 45],
        'user_id': 'user-1', 'today': '2026-10-15',
    })
    data = resp.get_json()
    assert data['deload_active'] is True
    assert data['show_banner'] is False

@pytest.mark.parametrize("body", [
    {'plan_type': 'hypertrophy'},
    {'plan_type': 'yoga', 'hit_rates': [80]},
    {'plan_type': 'hypertrophy', 'hit_rates': 'high'},
    {'plan_type': 'hypertrophy', 'sessions': [], 'weeks': 0},
    {'plan_type': 'hypertrophy', 'sessions': [{'logs': []}]},
    {'plan_type': 'hypertrophy', 'sessions': [{'workout_date': '2026-10-01', 'logs': ['squat']}]},
    {'plan_type': 'hypertrophy', 'sessions': [{'workout_date': '2026-10-01', 'logs': 'squat'}]},
])
def test_suggestion_rejects_bad_input(client, body):
    assert client.post('/v1/deload/suggestion', json=body).status_code == 400

def test_suggestion_rejects_non_finite_hit_rates(client):
    body = '{"plan_type": "hypertrophy", "hit_rates": [80, Infinity, 80, 80, 80]}'
    resp = client.post('/v1/deload/suggestion', data=body, content_type='application/json')
    assert resp.status_code == 400

def test_fatigue(client):
    resp = client.post('/v1/deload/fatigue', json={
        'plan_type': 'hypertrophy', 'hit_rates': [90, 90, 90, 90, 40, 40],
    })
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['score'] == 93
    assert data['zone'] == 'red'

def test_fatigue_green(client):
    data = client.post('/v1/deload/fatigue', json={'plan_type': 'hypertrophy', 'hit_rates': [80] * 5}).get_json()
    assert (data['score'], data['zone']) == (40, 'green')

def test_deload_week_lifecycle(client, fake_redis):
    data = client.get('/v1/users/user-1/deload-week').get_json()
    assert data['active_until'] is None
    assert data['active'] is False
    assert data['multiplier'] == 0.65

    resp = client.put('/v1/users/user-1/deload-week', json={'start_date': '2026-10-14'})
    assert resp.status_code == 200
    assert resp.get_json()['active_until'] == '2026-10-18'

    assert client.get('/v1/users/user-1/deload-week?date=2026-10-15').get_json()['active'] is True
    assert client.get('/v1/users/user-1/deload-week?date=2026-10-20').get_json()['active'] is False

    assert client.delete('/v1/users/user-1/deload-week').status_code == 200
    assert client.get('/v1/users/user-1/deload-week').get_json()['active_until'] is None

def test_deload_week_rejects_bad_dates(client, fake_redis):
    assert client.put('/v1/users/user-1/deload-week', json={'start_date': 'next week'}).status_code == 400
    assert client.get('/v1/users/user-1/deload-week?date=soon').status_code == 400

def test_dismiss_banner(client, fake_redis):
    resp = client.post('/v1/users/user-1/deload-week/dismiss-banner', json={'date': '2026-10-17'})
    assert resp.status_code == 200
    assert resp.get_json()['dismissed_on'] == '2026-10-17'
    assert fake_redis.expiry['deload_banner_dismissed:user-1'] == timedelta(days=7)
