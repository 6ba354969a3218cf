"""Flask CLI commands."""

from dealership.models import User, Warehouse


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init", "--admin-password", "Bootstrap123"])
    assert result.exit_code == 0, result.output
    assert "Created super admin: admin" in result.output

    again = runner.invoke(args=["system", "init", "--admin-password", "Bootstrap123"])
    assert again.exit_code == 0
    assert "already exists" in again.output

    assert db_session.query(Warehouse).count() == 2
    assert db_session.query(User).filter_by(role="super_admin").count() == 1


def test_system_init_rejects_weak_password(app, db_session):
    result = app.test_cli_runner().invoke(args=["system", "init", "--admin-password", "weak"])
    assert result.exit_code != 0
    assert "Failed to create super admin" in result.output


def test_users_create_and_list(app, db_session, showroom):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--username", "clerk2",
        "--email", "clerk2@dealer.test",
        "--password", "Password123",
        "--role", "showroom_user",
        "--warehouse-id", str(showroom.id),
    ])
    assert result.exit_code == 0, result.output

    listing = runner.invoke(args=["users", "list"])
    assert "clerk2" in listing.output
    assert "showroom_user" in listing.output


def test_users_create_rejects_agent_role(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "users", "create", "--username", "a", "--email", "a@dealer.test",
        "--password", "Password123", "--role", "agent",
    ])
    assert result.exit_code != 0


def test_ledger_verify_and_repair(app, db_session, make_agent):
    agent = make_agent("Drifting Agent", opening=-1000)
    runner = app.test_cli_runner()

    ok = runner.invoke(args=["ledger", "verify"])
    assert ok.exit_code == 0
    assert "PASS Agent" in ok.output

    agent.current_balance_cents = 777
    db_session.commit()

    bad = runner.invoke(args=["ledger", "verify", "--agent-id", str(agent.id)])
    assert bad.exit_code == 1
    assert "FAIL Agent" in bad.output

    refused = runner.invoke(args=["ledger", "repair", "--agent-id", str(agent.id)])
    assert refused.exit_code != 0

    fixed = runner.invoke(args=["ledger", "repair", "--agent-id", str(agent.id), "--yes"])
    assert fixed.exit_code == 0
    assert "reset from 777 to -1000" in fixed.output
    db_session.refresh(agent)
    assert agent.current_balance_cents == -1000


def test_ledger_verify_unknown_agent(app, db_session):
    result = app.test_cli_runner().invoke(args=["ledger", "verify", "--agent-id", "999"])
    assert result.exit_code != 0


def test_warehouses_list(app, db_session, main_warehouse, online_agent):
    result = app.test_cli_runner().invoke(args=["warehouses", "list"])
    assert "Main warehouse" in result.output
    assert f"agent={online_agent.id}" in result.output


def test_sessions_cleanup(app, db_session):
    result = app.test_cli_runner().invoke(args=["sessions", "cleanup"])
    assert result.exit_code == 0
    assert "Deleted 0 expired session token(s)" in result.output
