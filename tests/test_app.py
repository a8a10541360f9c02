def test_home_describes_the_service(app):
    response = app.test_client().get('/')

    assert response.status_code == 200
    assert response.get_json()['name'] == 'LifeFlow'
    assert response.get_json()['authenticated'] is False


def test_unknown_route_answers_json(app):
    response = app.test_client().get('/no/such/page')

    assert response.status_code == 404
    assert response.get_json()['success'] is False


def test_test_config_overrides_environment(app):
    assert app.config['SQLALCHEMY_DATABASE_URI'] == 'sqlite://'
    assert app.config['REQUEST_TTL_HOURS'] == 24
    assert app.config['CONTACT_REQUEST_TTL_HOURS'] == 72
    assert app.config['SCHEDULER_ENABLED'] is False
