def test_index(client):
    response = client.get('/')

    body = response.get_json()
    assert response.status_code == 200
    assert body['success'] is True
    assert body['message'] == 'ASTU Smart Campus Safety API - Server is running'
    assert body['data']['version'] == '1.0.0'
    assert body['data']['timestamp'].endswith('+00:00')


def test_status_reports_database(client):
    response = client.get('/api/status')

    data = response.get_json()['data']
    assert data['status'] == 'operational'
    assert data['database'] == 'connected'


def test_unknown_route_uses_error_envelope(client):
    response = client.get('/api/nowhere')

    assert response.status_code == 404
    assert response.get_json() == {'success': False, 'message': 'Route /api/nowhere not found'}


def test_non_json_body_is_rejected(client, student):
    _, headers = student

    response = client.post('/api/reports', data='type=security', headers=headers,
                           content_type='application/x-www-form-urlencoded')

    assert response.status_code == 400
    assert response.get_json()['message'] == 'Request body must be a JSON object'


def test_cors_allows_frontend_origin(client):
    response = client.get('/', headers={'Origin': 'http://localhost:3000'})

    assert response.headers['Access-Control-Allow-Origin'] == 'http://localhost:3000'
