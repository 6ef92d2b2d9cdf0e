from datetime import datetime, timedelta, timezone

NOW = datetime.now(timezone.utc)


def _iso(dt):
    return dt.strftime('%Y-%m-%dT%H:%M:%SZ')


def _reminder(client, headers, when, **fields):
    body = {'title': 'Revise', 'reminderDate': _iso(when), **fields}
    r = client.post('/api/reminders', headers=headers, json=body)
    assert r.status_code == 201, r.text
    return r.json()['data']['reminder']


def test_create_reminder_defaults(client, headers):
    reminder = _reminder(client, headers, NOW + timedelta(hours=2), subject='Maths')
    assert reminder['type'] == 'Other'
    assert reminder['priority'] == 'Medium'
    assert reminder['isCompleted'] is False
    assert reminder['isActive'] is True
    assert reminder['isOverdue'] is False
    assert reminder['subject'] == 'Maths'

    past = _reminder(client, headers, NOW - timedelta(hours=2), type='Exam')
    assert past['isOverdue'] is True

    r = client.post('/api/reminders', headers=headers, json={'title': 'x', 'reminderDate': _iso(NOW), 'type': 'Party'})
    assert r.status_code == 400


def test_list_and_upcoming_windows(client, headers):
    soon = _reminder(client, headers, NOW + timedelta(hours=2))
    later = _reminder(client, headers, NOW + timedelta(hours=48))
    past = _reminder(client, headers, NOW - timedelta(hours=5))
    _reminder(client, headers, NOW + timedelta(hours=1), isActive=False)

    r = client.get('/api/reminders', headers=headers)
    assert [x['id'] for x in r.json()['data']['reminders']] == [past['id'], soon['id'], later['id']]

    r = client.get('/api/reminders/upcoming', headers=headers)
    data = r.json()['data']
    assert [x['id'] for x in data['reminders']] == [soon['id']]
    assert data['timeframe'] == '24 hours'

    r = client.get('/api/reminders/upcoming', headers=headers, params={'hours': 72})
    assert [x['id'] for x in r.json()['data']['reminders']] == [soon['id'], later['id']]
    assert r.json()['data']['timeframe'] == '72 hours'

    r = client.get('/api/reminders/upcoming', headers=headers, params={'hours': 0})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid query parameters'


def test_completing_reminder_hides_it(client, headers):
    reminder = _reminder(client, headers, NOW + timedelta(hours=3))
    url = f"/api/reminders/{reminder['id']}"
    r = client.put(url, headers=headers, json={'isCompleted': True})
    assert r.status_code == 200
    assert r.json()['data']['reminder']['completedAt'] is not None
    assert client.get('/api/reminders', headers=headers).json()['data']['count'] == 0

    r = client.put(url, headers=headers, json={'isCompleted': False, 'title': 'Revise again'})
    updated = r.json()['data']['reminder']
    assert updated['completedAt'] is None
    assert updated['title'] == 'Revise again'


def test_reminder_task_link_and_ownership(client, headers, other_headers):
    theirs = client.post('/api/tasks', headers=other_headers, json={
        'title': 'Theirs', 'subject': 'Art', 'dueDate': _iso(NOW + timedelta(days=1)),
    }).json()['data']['task']
    r = client.post('/api/reminders', headers=headers, json={
        'title': 'Sneaky', 'reminderDate': _iso(NOW), 'task': theirs['id'],
    })
    assert r.status_code == 400
    assert r.json()['errors'][0]['field'] == 'task'

    reminder = _reminder(client, headers, NOW + timedelta(hours=1))
    url = f"/api/reminders/{reminder['id']}"
    assert client.put(url, headers=other_headers, json={'title': 'Mine'}).status_code == 404
    r = client.delete(url, headers=other_headers)
    assert r.status_code == 404
    assert r.json()['message'] == 'Reminder not found'

    assert client.delete(url, headers=headers).json()['message'] == 'Reminder deleted successfully'
