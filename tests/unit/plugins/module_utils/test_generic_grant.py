# -*- coding: utf-8 -*-

import pytest

from ansible_collections.rpunt.snowflake.plugins.module_utils.errors import (
    EncodingError,
    GrantError,
    InvalidPrivilegeError,
    MalformedIDError,
    RemoteExecutionError,
)
from ansible_collections.rpunt.snowflake.plugins.module_utils.generic_grant import (
    GrantRecord,
    create_generic_grant,
    delete_generic_grant,
    read_generic_grant,
    remote_role_grants,
)
from ansible_collections.rpunt.snowflake.plugins.module_utils.grant_builders import (
    RESOURCE_MONITOR,
    SCHEMA,
    WAREHOUSE,
)

MONITOR = ("RESOURCE MONITOR", '"WH_MONITOR"')
LOAD_WH = ("WAREHOUSE", '"LOAD_WH"')


def test_resource_monitor_lifecycle(mock_module, fake_snowflake):
    fake_snowflake.add_object(*MONITOR)

    identity = create_generic_grant(
        mock_module, fake_snowflake, RESOURCE_MONITOR, "WH_MONITOR", "MONITOR", {"ANALYST"}, False
    )
    grant_id = identity.to_string()
    assert grant_id == "WH_MONITOR|MONITOR|false|ANALYST"
    assert fake_snowflake.queries == ['GRANT MONITOR ON RESOURCE MONITOR "WH_MONITOR" TO ROLE "ANALYST"']

    record = read_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, grant_id)
    assert record == GrantRecord("WH_MONITOR", "MONITOR", ("ANALYST",), False)

    fake_snowflake.queries = []
    executed = delete_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, grant_id)
    assert executed == ['REVOKE MONITOR ON RESOURCE MONITOR "WH_MONITOR" FROM ROLE "ANALYST"']
    assert fake_snowflake.queries == executed
    assert fake_snowflake.rows(*MONITOR) == []


def test_create_canonicalises_privilege(mock_module, fake_snowflake):
    fake_snowflake.add_object(*MONITOR)
    identity = create_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, "WH_MONITOR", "modify", ["A"])
    assert identity.privilege == "MODIFY"
    assert fake_snowflake.queries == ['GRANT MODIFY ON RESOURCE MONITOR "WH_MONITOR" TO ROLE "A"']


def test_create_rejects_invalid_privilege_before_any_statement(mock_module, fake_snowflake):
    fake_snowflake.add_object(*MONITOR)
    with pytest.raises(InvalidPrivilegeError) as excinfo:
        create_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, "WH_MONITOR", "USAGE", ["A"])
    assert "USAGE" in str(excinfo.value)
    assert "MONITOR" in str(excinfo.value)
    assert fake_snowflake.queries == []


def test_create_requires_roles(mock_module, fake_snowflake):
    with pytest.raises(GrantError, match="No roles"):
        create_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, "WH_MONITOR", "MONITOR", [])
    assert fake_snowflake.queries == []


def test_create_stops_at_first_failing_role(mock_module, fake_snowflake):
    fake_snowflake.add_object(*LOAD_WH)
    fake_snowflake.fail_on('TO ROLE "B"', message="Insufficient privileges to operate on warehouse", errno=3001)

    with pytest.raises(RemoteExecutionError) as excinfo:
        create_generic_grant(mock_module, fake_snowflake, WAREHOUSE, "LOAD_WH", "USAGE", ["A", "B", "C"])

    error = excinfo.value
    assert error.role == "B"
    assert error.resource_name == "LOAD_WH"
    assert error.privilege == "USAGE"
    assert "Insufficient privileges" in str(error)
    # A keeps its grant, C is never attempted
    assert [row["grantee_name"] for row in fake_snowflake.rows(*LOAD_WH)] == ["A"]
    assert len(fake_snowflake.queries) == 2


def test_create_is_repeatable(mock_module, fake_snowflake):
    fake_snowflake.add_object(*LOAD_WH)
    first = create_generic_grant(mock_module, fake_snowflake, WAREHOUSE, "LOAD_WH", "USAGE", ["A", "A", "B"])
    second = create_generic_grant(mock_module, fake_snowflake, WAREHOUSE, "LOAD_WH", "USAGE", ["A", "B"])
    assert first == second
    assert first.roles == ("A", "B")
    assert len(fake_snowflake.rows(*LOAD_WH)) == 2


def test_create_warns_when_grant_id_cannot_be_encoded(mock_module, fake_snowflake):
    fake_snowflake.add_object("WAREHOUSE", '"LOAD\nWH"')
    with pytest.raises(EncodingError):
        create_generic_grant(mock_module, fake_snowflake, WAREHOUSE, "LOAD\nWH", "USAGE", ["A"])
    assert mock_module.warn.called
    assert "reconciled manually" in mock_module.warn.call_args[0][0]
    assert len(fake_snowflake.rows("WAREHOUSE", '"LOAD\nWH"')) == 1


def test_read_drops_roles_missing_remotely(mock_module, fake_snowflake):
    for role in ("A", "C"):
        fake_snowflake.add_grant(*LOAD_WH, privilege="USAGE", role=role)
    fake_snowflake.add_grant(*LOAD_WH, privilege="MONITOR", role="B")

    record = read_generic_grant(mock_module, fake_snowflake, WAREHOUSE, "LOAD_WH|USAGE|false|A|B|C")

    assert record.roles == ("A", "C")
    # Missing roles are never re-granted during a read
    assert all(q.startswith("SHOW GRANTS") for q in fake_snowflake.queries)


def test_read_without_declared_roles_reports_every_holder(mock_module, fake_snowflake):
    for role in ("ZED", "ALPHA"):
        fake_snowflake.add_grant(*LOAD_WH, privilege="USAGE", role=role)
    record = read_generic_grant(mock_module, fake_snowflake, WAREHOUSE, "LOAD_WH|USAGE|false")
    assert record.roles == ("ALPHA", "ZED")


def test_read_wildcard_matches_any_privilege(mock_module, fake_snowflake):
    fake_snowflake.add_grant(*LOAD_WH, privilege="USAGE", role="A")
    fake_snowflake.add_grant(*LOAD_WH, privilege="OPERATE", role="B")

    record = read_generic_grant(mock_module, fake_snowflake, WAREHOUSE, "LOAD_WH|ALL|false|A|B|C")
    assert record.roles == ("A", "B")
    assert record.privilege == "ALL"

    record = read_generic_grant(mock_module, fake_snowflake, WAREHOUSE, "LOAD_WH|OPERATE|false|A|B|C")
    assert record.roles == ("B",)


def test_read_returns_none_when_object_is_gone(mock_module, fake_snowflake):
    fake_snowflake.drop_object(*MONITOR)
    assert read_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, "WH_MONITOR|MONITOR|false|ANALYST") is None


def test_read_propagates_other_failures(mock_module, fake_snowflake):
    fake_snowflake.add_object(*MONITOR)
    fake_snowflake.fail_on("SHOW GRANTS", message="Insufficient privileges", errno=3001)
    with pytest.raises(RemoteExecutionError) as excinfo:
        read_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, "WH_MONITOR|MONITOR|false|ANALYST")
    assert excinfo.value.resource_name == "WH_MONITOR"


def test_read_rejects_malformed_id_without_remote_call(mock_module, fake_snowflake):
    with pytest.raises(MalformedIDError):
        read_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, "WH_MONITOR|MONITOR")
    assert fake_snowflake.queries == []


def test_read_rejects_privilege_foreign_to_kind(mock_module, fake_snowflake):
    with pytest.raises(InvalidPrivilegeError):
        read_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, "WH_MONITOR|OPERATE|false|A")
    assert fake_snowflake.queries == []


def test_grant_option_is_verified_for_warehouses(mock_module, fake_snowflake):
    fake_snowflake.add_grant(*LOAD_WH, privilege="USAGE", role="A", grant_option=True)
    fake_snowflake.add_grant(*LOAD_WH, privilege="USAGE", role="B", grant_option=False)

    assert read_generic_grant(mock_module, fake_snowflake, WAREHOUSE, "LOAD_WH|USAGE|true|A").grant_option is True
    assert read_generic_grant(mock_module, fake_snowflake, WAREHOUSE, "LOAD_WH|USAGE|true|A|B").grant_option is False
    assert read_generic_grant(mock_module, fake_snowflake, WAREHOUSE, "LOAD_WH|USAGE|false|A").grant_option is True


def test_grant_option_is_trusted_for_resource_monitors(mock_module, fake_snowflake):
    fake_snowflake.add_grant(*MONITOR, privilege="MONITOR", role="A", grant_option=False)
    record = read_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, "WH_MONITOR|MONITOR|true|A")
    assert record.grant_option is True


def test_delete_twice_is_safe(mock_module, fake_snowflake):
    fake_snowflake.add_grant(*MONITOR, privilege="MONITOR", role="ANALYST")
    grant_id = "WH_MONITOR|MONITOR|false|ANALYST"

    delete_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, grant_id)
    delete_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, grant_id)

    assert fake_snowflake.rows(*MONITOR) == []


def test_delete_treats_missing_object_as_done(mock_module, fake_snowflake):
    fake_snowflake.drop_object(*MONITOR)
    executed = delete_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, "WH_MONITOR|MONITOR|false|A|B")
    assert executed == []
    assert len(fake_snowflake.queries) == 2


def test_delete_surfaces_other_failures_with_context(mock_module, fake_snowflake):
    fake_snowflake.add_grant(*MONITOR, privilege="MONITOR", role="A")
    fake_snowflake.add_grant(*MONITOR, privilege="MONITOR", role="B")
    fake_snowflake.fail_on('FROM ROLE "B"', message="Insufficient privileges", errno=3001)

    with pytest.raises(RemoteExecutionError) as excinfo:
        delete_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, "WH_MONITOR|MONITOR|false|A|B")

    assert excinfo.value.role == "B"
    assert [row["grantee_name"] for row in fake_snowflake.rows(*MONITOR)] == ["B"]


def test_delete_with_explicit_roles(mock_module, fake_snowflake):
    fake_snowflake.add_grant(*MONITOR, privilege="MONITOR", role="A")
    executed = delete_generic_grant(mock_module, fake_snowflake, RESOURCE_MONITOR, "WH_MONITOR|MONITOR|false", roles=["A"])
    assert executed == ['REVOKE MONITOR ON RESOURCE MONITOR "WH_MONITOR" FROM ROLE "A"']


def test_invalid_schema_name_is_a_grant_error(mock_module, fake_snowflake):
    with pytest.raises(GrantError, match="Invalid schema name"):
        read_generic_grant(mock_module, fake_snowflake, SCHEMA, "NOT_QUALIFIED|USAGE|false|A")


def test_remote_role_grants_ignores_shares():
    rows = [
        dict(privilege="USAGE", granted_to="SHARE", grantee_name="ACME.SHARE", grant_option="false"),
        dict(privilege="usage", granted_to="ROLE", grantee_name="A", grant_option="true"),
        dict(privilege="USAGE", granted_to="ROLE", grantee_name="B", grant_option=False),
    ]
    assert remote_role_grants(rows, "USAGE") == {"A": True, "B": False}
