from datetime import datetime, timedelta, timezone


def _iso(dt):
    return dt.strftime('%Y-%m-%dT%H:%M:%SZ')


def _start(client, headers, started, **fields):
    body = {'subject': 'Maths', 'startTime': _iso(started), **fields}
    r = client.post('/api/study-sessions', headers=headers, json=body)
    assert r.status_code == 201, r.text
    return r.json()['data']['session']


def test_start_and_end_session_derives_durations(client, headers):
    started = datetime.now(timezone.utc).replace(microsecond=0) - timedelta(hours=3)
    session = _start(client, headers, started, notes='past papers')
    assert session['status'] == 'Active'
    assert session['endTime'] is None
    assert session['duration'] == 0

    r = client.put(f"/api/study-sessions/{session['id']}/end", headers=headers, json={
        'endTime': _iso(started + timedelta(minutes=90)),
        'productivity': 4,
        'breaks': [{'duration': 10}, {'startTime': _iso(started + timedelta(minutes=40)),
                                      'endTime': _iso(started + timedelta(minutes=45))}],
    })
    assert r.status_code == 200
    assert r.json()['message'] == 'Study session ended successfully'
    ended = r.json()['data']['session']
    assert ended['status'] == 'Completed'
    assert ended['duration'] == 90
    assert ended['totalBreakTime'] == 15
    assert ended['effectiveStudyTime'] == 75
    assert ended['productivity'] == 4
    assert ended['notes'] == 'past papers'


def test_end_before_start_is_rejected(client, headers):
    started = datetime.now(timezone.utc) - timedelta(hours=1)
    session = _start(client, headers, started)
    r = client.put(f"/api/study-sessions/{session['id']}/end", headers=headers,
                   json={'endTime': _iso(started - timedelta(minutes=5))})
    assert r.status_code == 400
    assert r.json()['errors'][0]['field'] == 'endTime'


def test_linked_task_must_belong_to_caller(client, headers, other_headers):
    task = client.post('/api/tasks', headers=other_headers, json={
        'title': 'Not yours', 'subject': 'Maths', 'dueDate': '2030-01-01T00:00:00Z',
    }).json()['data']['task']
    r = client.post('/api/study-sessions', headers=headers, json={
        'subject': 'Maths', 'startTime': '2030-01-01T00:00:00Z', 'task': task['id'],
    })
    assert r.status_code == 400
    assert r.json()['errors'] == [{'field': 'task', 'message': 'Task not found'}]

    r = client.post('/api/study-sessions', headers=other_headers, json={
        'subject': 'Maths', 'startTime': '2030-01-01T00:00:00Z', 'task': task['id'],
    })
    assert r.status_code == 201
    assert r.json()['data']['session']['task'] == task['id']


def test_list_newest_first_with_date_range(client, headers):
    base = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
    first = _start(client, headers, base)
    second = _start(client, headers, base + timedelta(days=2))
    third = _start(client, headers, base + timedelta(days=4))

    r = client.get('/api/study-sessions', headers=headers)
    assert [s['id'] for s in r.json()['data']['sessions']] == [third['id'], second['id'], first['id']]

    r = client.get('/api/study-sessions', headers=headers, params={
        'startDate': _iso(base + timedelta(days=1)), 'endDate': _iso(base + timedelta(days=3)),
    })
    assert [s['id'] for s in r.json()['data']['sessions']] == [second['id']]

    # only one bound given: no filtering
    r = client.get('/api/study-sessions', headers=headers, params={'startDate': _iso(base + timedelta(days=3))})
    assert r.json()['data']['count'] == 3

    r = client.get('/api/study-sessions', headers=headers, params={
        'startDate': _iso(base + timedelta(days=3)), 'endDate': _iso(base),
    })
    assert r.status_code == 400
    assert r.json()['message'] == 'endDate must not be before startDate'


def test_weekly_stats_cover_completed_sessions_of_last_seven_days(client, headers):
    now = datetime.now(timezone.utc).replace(microsecond=0)

    def finished(subject, started, minutes, productivity):
        s = _start(client, headers, started, subject=subject)
        client.put(f"/api/study-sessions/{s['id']}/end", headers=headers, json={
            'endTime': _iso(started + timedelta(minutes=minutes)), 'productivity': productivity,
        })

    finished('Maths', now - timedelta(days=1), 60, 3)
    finished('Maths', now - timedelta(days=2), 30, 4)
    finished('Physics', now - timedelta(days=3), 45, 5)
    finished('Maths', now - timedelta(days=10), 120, 1)   # outside the window
    _start(client, headers, now - timedelta(hours=2))      # still active

    r = client.get('/api/study-sessions/stats/weekly', headers=headers)
    assert r.status_code == 200
    data = r.json()['data']
    assert data['stats'] == [
        {'subject': 'Maths', 'totalSessions': 2, 'totalTime': 90, 'avgProductivity': 3.5},
        {'subject': 'Physics', 'totalSessions': 1, 'totalTime': 45, 'avgProductivity': 5.0},
    ]
    assert data['period']['startDate'].endswith('Z')
    assert data['period']['endDate'].endswith('Z')


def test_sessions_are_scoped_to_owner(client, headers, other_headers):
    session = _start(client, headers, datetime.now(timezone.utc))
    r = client.put(f"/api/study-sessions/{session['id']}/end", headers=other_headers,
                   json={'endTime': _iso(datetime.now(timezone.utc))})
    assert r.status_code == 404
    assert r.json()['message'] == 'Study session not found'
    assert client.get('/api/study-sessions', headers=other_headers).json()['data']['count'] == 0
