from amigo_secreto.models import Assignment, Participant


def test_participants_commands(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["participants", "add", "Ana", "+5211"])
    assert result.exit_code == 0
    assert "Registered" in result.output

    result = runner.invoke(args=["participants", "add", "Ana", "+5212"])
    assert result.exit_code != 0
    assert "ya está registrado" in result.output

    runner.invoke(args=["participants", "add", "Admin", "+5210", "--admin"])
    result = runner.invoke(args=["participants", "list"])
    assert "Ana" in result.output
    assert "(admin)" in result.output

    with app.app_context():
        ana = Participant.query.filter_by(name="Ana").one()
    result = runner.invoke(args=["participants", "deactivate", str(ana.id)])
    assert result.exit_code == 0
    assert "Deactivated" in result.output


def test_sorteo_commands(app, register):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["sorteo", "run"])
    assert result.exit_code != 0
    assert "al menos 2" in result.output

    register("Ana", "Beto", "Carla")
    result = runner.invoke(args=["sorteo", "run"])
    assert result.exit_code == 0
    assert "3 assignments" in result.output

    result = runner.invoke(args=["sorteo", "reset"])
    assert "3 assignments removed" in result.output
    with app.app_context():
        assert Assignment.query.count() == 0
