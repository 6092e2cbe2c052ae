import re


def submit(client, headers, **overrides):
    payload = {
        'type': 'Security',
        'category': 'Theft',
        'location': 'Library, ground floor',
        'description': 'My laptop was taken from the study area.',
        'priority': 'High'
    }
    payload.update(overrides)
    return client.post('/api/reports', json=payload, headers=headers)


def test_submit_report(client, student):
    user, headers = student

    response = submit(client, headers)

    assert response.status_code == 201
    report = response.get_json()['data']['report']
    assert re.fullmatch(r'ASTU-\d{5}', report['reference'])
    assert report['id'] == report['reference']
    assert report['type'] == 'security'
    assert report['priority'] == 'high'
    assert report['status'] == 'open'
    assert report['source'] == 'form'
    assert report['userId'] == user.id


def test_submit_report_validation(client, student):
    _, headers = student

    response = submit(client, headers, type='noise')
    assert response.status_code == 400
    assert response.get_json()['errors'][0]['field'] == 'type'

    response = submit(client, headers, priority='whenever')
    assert response.status_code == 400

    response = submit(client, headers, location='   ')
    assert response.status_code == 400

    response = client.post('/api/reports', json={'type': 'security'}, headers=headers)
    fields = {e['field'] for e in response.get_json()['errors']}
    assert fields == {'category', 'location', 'description'}


def test_priority_defaults_to_medium(client, student):
    _, headers = student
    payload = {'type': 'maintenance', 'category': 'Electrical', 'location': 'Dorm 12',
               'description': 'Hallway lights are out.'}

    response = client.post('/api/reports', json=payload, headers=headers)

    assert response.get_json()['data']['report']['priority'] == 'medium'


def test_students_only_see_their_own_reports(client, make_user, admin):
    _, first_headers = make_user()
    _, second_headers = make_user()
    _, admin_headers = admin
    mine = submit(client, first_headers).get_json()['data']['report']
    theirs = submit(client, second_headers, type='maintenance').get_json()['data']['report']

    response = client.get('/api/reports', headers=first_headers)
    assert [r['reference'] for r in response.get_json()['data']['reports']] == [mine['reference']]

    response = client.get(f"/api/reports/{theirs['reference']}", headers=first_headers)
    assert response.status_code == 404

    response = client.get(f"/api/reports/{mine['reference'].lower()}", headers=first_headers)
    assert response.status_code == 200

    response = client.get('/api/reports', headers=admin_headers)
    data = response.get_json()['data']
    assert data['pagination']['total'] == 2

    response = client.get('/api/reports?type=maintenance', headers=admin_headers)
    assert [r['reference'] for r in response.get_json()['data']['reports']] == [theirs['reference']]

    assert client.get('/api/reports?status=lost', headers=admin_headers).status_code == 400


def test_only_staff_update_status(client, student, staff):
    _, student_headers = student
    _, staff_headers = staff
    reference = submit(client, student_headers).get_json()['data']['report']['reference']

    response = client.patch(f'/api/reports/{reference}/status', json={'status': 'resolved'},
                            headers=student_headers)
    assert response.status_code == 403

    response = client.patch(f'/api/reports/{reference}/status', json={'status': 'In Review'},
                            headers=staff_headers)
    assert response.status_code == 200
    assert response.get_json()['data']['report']['status'] == 'in_review'

    response = client.patch(f'/api/reports/{reference}/status', json={'status': 'archived'},
                            headers=staff_headers)
    assert response.status_code == 400

    response = client.patch('/api/reports/ASTU-00000/status', json={'status': 'resolved'},
                            headers=staff_headers)
    assert response.status_code == 404

    response = client.get('/api/reports?status=in_review', headers=student_headers)
    assert len(response.get_json()['data']['reports']) == 1


def test_stats(client, student, staff):
    _, student_headers = student
    _, staff_headers = staff
    first = submit(client, student_headers).get_json()['data']['report']
    submit(client, student_headers, type='maintenance', priority='low')
    submit(client, staff_headers, priority='critical')
    client.patch(f"/api/reports/{first['reference']}/status", json={'status': 'resolved'}, headers=staff_headers)

    stats = client.get('/api/reports/stats', headers=student_headers).get_json()['data']['stats']
    assert stats['total'] == 2
    assert stats['resolved'] == 1
    assert stats['activeCount'] == 1
    assert stats['byType'] == {'security': 1, 'maintenance': 1}
    assert stats['securityRatio'] == 50
    assert [r['reference'] for r in stats['recentUrgent']] == [first['reference']]

    stats = client.get('/api/reports/stats', headers=staff_headers).get_json()['data']['stats']
    assert stats['total'] == 3
    assert stats['open'] == 2
    assert stats['securityRatio'] == 67
    assert len(stats['recentUrgent']) == 2


def test_empty_stats(client, student):
    _, headers = student

    stats = client.get('/api/reports/stats', headers=headers).get_json()['data']['stats']

    assert stats['total'] == 0
    assert stats['securityRatio'] == 0
    assert stats['recentUrgent'] == []
