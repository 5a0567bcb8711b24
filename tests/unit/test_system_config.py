"""
Unit tests for SystemConfigService — load, apply and reload semantics.
"""

from __future__ import annotations

from railway import ErrorCode
from railway.assertions import ResultAssertions

from osi_certify.domain.models import SystemConfig
from osi_certify.system_config import SystemConfigService
from tests.conftest import ADMIN, MAKER
from tests.unit.fakes import InMemorySystemConfigStore


class TestReload:
    def test_reload_reads_store(self) -> None:
        """
        GIVEN a store with demo_mode enabled
        WHEN the service reloads
        THEN the current config reflects the stored rows.
        """
        service = SystemConfigService(InMemorySystemConfigStore({"demo_mode": "true"}))

        ResultAssertions.assert_success(service.reload())

        assert service.current == SystemConfig(demo_mode=True)

    def test_empty_store_gives_defaults(self) -> None:
        service = SystemConfigService(InMemorySystemConfigStore())

        assert ResultAssertions.assert_success(service.reload()) == SystemConfig()

    def test_failed_reload_keeps_previous_config(self) -> None:
        """
        GIVEN an active config and a store that has gone away
        WHEN the service reloads
        THEN the failure is returned and the previous config stays active.
        """
        previous = SystemConfig(presentation_mode=True)
        service = SystemConfigService(InMemorySystemConfigStore(failing=True), initial=previous)

        ResultAssertions.assert_failure(service.reload(), ErrorCode.DATABASE_ERROR)

        assert service.current is previous


class TestApply:
    def test_admin_apply_persists_and_swaps(self) -> None:
        store = InMemorySystemConfigStore()
        service = SystemConfigService(store)
        wanted = SystemConfig(demo_mode=True, accelerated_mode=True)

        ResultAssertions.assert_success(service.apply(wanted, ADMIN))

        assert service.current == wanted
        assert store.rows == {
            "demo_mode": "true",
            "presentation_mode": "false",
            "accelerated_mode": "true",
        }

    def test_manufacturer_cannot_apply(self) -> None:
        store = InMemorySystemConfigStore()
        service = SystemConfigService(store)

        ResultAssertions.assert_failure(
            service.apply(SystemConfig(demo_mode=True), MAKER), ErrorCode.AUTHORIZATION_ERROR
        )

        assert service.current == SystemConfig()
        assert store.rows == {}

    def test_failed_save_does_not_swap(self) -> None:
        service = SystemConfigService(InMemorySystemConfigStore(failing=True))

        ResultAssertions.assert_failure(
            service.apply(SystemConfig(demo_mode=True), ADMIN), ErrorCode.DATABASE_ERROR
        )

        assert service.current == SystemConfig()


class TestSystemConfigRows:
    def test_unknown_keys_are_ignored(self) -> None:
        assert SystemConfig.from_rows({"maintenance": "true"}) == SystemConfig()

    def test_values_are_case_insensitive(self) -> None:
        assert SystemConfig.from_rows({"accelerated_mode": " TRUE "}).accelerated_mode

    def test_wire_shape(self) -> None:
        assert SystemConfig(presentation_mode=True).to_dict() == {
            "demoMode": False,
            "presentationMode": True,
            "acceleratedMode": False,
        }
