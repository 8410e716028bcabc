"""
Configuration loading, validation and the kernel bridges.

The packaged default set must load cleanly; broken sets must fail with
every problem listed, not just the first one.
"""

import textwrap

import pytest

from clinic_config import DEFAULT_CONFIG_PATH, get_active_config
from clinic_config.bridges import build_kind_configs, build_status_machine, stock_mode
from clinic_config.loader import compute_checksum, load_yaml_file
from clinic_config.schema import POLICY_FREE, POLICY_ORDERED
from clinic_config.validator import validate_configuration
from clinic_kernel.domain.inventory import StockMode
from clinic_kernel.domain.policy import FreePolicy, OrderedPolicy
from clinic_kernel.domain.statuses import ContractStatus, EntityKind, ReportStatus
from clinic_kernel.exceptions import ConfigurationError


def _write(tmp_path, body: str):
    path = tmp_path / "clinic.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


MINIMAL = """
    config_id: minimal
    version: 3
    grace_days: 7
    inventory:
      stock_mode: strict
    kinds:
      report:
        policy: free
        statuses: [مفتوح, مغلق]
        terminal: [مغلق]
"""


class TestDefaultConfiguration:
    def test_default_set_loads(self):
        config = get_active_config()
        assert config.config_id == "clinic-default"
        assert config.grace_days == 21
        assert {kind.kind for kind in config.kinds} == {k.value for k in EntityKind}

    def test_default_set_has_no_warnings(self):
        config = get_active_config()
        result = validate_configuration(config)
        assert result.is_valid
        assert result.warnings == []

    def test_kind_policies(self, active_config):
        assert active_config.kind("contract").policy == POLICY_ORDERED
        assert active_config.kind("transaction").policy == POLICY_FREE

    def test_trace_logged_with_checksum(self, captured_logs):
        config = get_active_config()

        traces = [r for r in captured_logs() if r["message"] == "CLINIC_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["checksum"] == config.checksum
        assert traces[0]["config_set_id"] == "clinic-default"
        assert traces[0]["logger"] == "clinic_kernel.config"

    def test_checksum_is_stable(self):
        data = load_yaml_file(DEFAULT_CONFIG_PATH)
        assert compute_checksum(data) == get_active_config().checksum
        assert compute_checksum(data) == compute_checksum(dict(reversed(data.items())))


class TestCustomConfiguration:
    def test_custom_file(self, tmp_path):
        config = get_active_config(_write(tmp_path, MINIMAL))
        assert config.version == 3
        assert config.grace_days == 7
        assert stock_mode(config) is StockMode.STRICT

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_every_error_is_reported(self, tmp_path):
        path = _write(tmp_path, """
            grace_days: -1
            inventory:
              stock_mode: lenient
            kinds:
              contract:
                policy: ordered
                statuses: [جديد, تم التسليم]
                terminal: [مغلق]
                audit_fields:
                  جديد: opened_on
              report:
                policy: circular
                statuses: [مفتوح]
                terminal: [مفتوح]
        """)

        with pytest.raises(ConfigurationError) as exc_info:
            get_active_config(path)

        errors = exc_info.value.errors
        assert exc_info.value.code == "CONFIGURATION_INVALID"
        assert any("grace_days" in e for e in errors)
        assert any("stock_mode" in e for e in errors)
        assert any("requires a rejected status" in e for e in errors)
        assert any("terminal status 'مغلق'" in e for e in errors)
        assert any("'opened_on'" in e for e in errors)
        assert any("unknown policy 'circular'" in e for e in errors)

    def test_rejected_status_inside_flow_is_an_error(self, tmp_path):
        path = _write(tmp_path, """
            kinds:
              contract:
                policy: ordered
                statuses: [جديد, مرفوض]
                rejected: مرفوض
                terminal: [مرفوض]
        """)
        with pytest.raises(ConfigurationError) as exc_info:
            get_active_config(path)
        assert any("must not be in the flow" in e for e in exc_info.value.errors)

    def test_warnings_do_not_block_loading(self, tmp_path, captured_logs):
        path = _write(tmp_path, """
            kinds:
              inspection:
                policy: free
                statuses: [مفتوح, مغلق]
        """)

        config = get_active_config(path)

        assert config.kind("inspection").statuses == ("مفتوح", "مغلق")
        warnings = [r["warning"] for r in captured_logs() if r["message"] == "config_warning"]
        assert any("not a standard entity kind" in w for w in warnings)
        assert any("no terminal statuses" in w for w in warnings)


class TestBridges:
    def test_policies_built_per_kind(self, active_config):
        configs = {c.kind: c for c in build_kind_configs(active_config)}
        assert isinstance(configs["contract"].policy, OrderedPolicy)
        assert isinstance(configs["report"].policy, FreePolicy)
        assert configs["report"].initial_status == ReportStatus.OPEN.value
        assert configs["contract"].grace_days == 21

    def test_kind_grace_days_override(self, tmp_path):
        path = _write(tmp_path, """
            grace_days: 10
            kinds:
              report:
                policy: free
                statuses: [مفتوح, مغلق]
                terminal: [مغلق]
                grace_days: 3
              transaction:
                policy: free
                statuses: [مفتوح تحت الاجراء, منجز]
                terminal: [منجز]
        """)
        configs = {c.kind: c for c in build_kind_configs(get_active_config(path))}
        assert configs["report"].grace_days == 3
        assert configs["transaction"].grace_days == 10

    def test_status_machine_from_config(self, active_config, deterministic_clock):
        machine = build_status_machine(active_config)
        entity = machine.create("contract", "C-1", now=deterministic_clock.now())

        assert entity.current_status == ContractStatus.NEW.value
        assert machine.allowed_next_states(entity) == (
            ContractStatus.NEW.value,
            ContractStatus.APPROVED.value,
            ContractStatus.CONTRACTED.value,
            ContractStatus.DELIVERED.value,
            ContractStatus.REJECTED.value,
        )

    def test_unknown_kind_is_a_configuration_error(self, active_config):
        machine = build_status_machine(active_config)
        with pytest.raises(ConfigurationError):
            machine.config_for("invoice")
