"""
Unit tests for the shared access rules.
"""

from __future__ import annotations

from railway import ErrorCode
from railway.assertions import ResultAssertions

from osi_certify.access import report_to_result, require_admin, visible_to
from osi_certify.domain.models import Submission, ValidationIssue, ValidationReport
from tests.conftest import ADMIN, MAKER, OTHER_MAKER, make_record


class TestRequireAdmin:
    def test_admin_passes(self) -> None:
        assert ResultAssertions.assert_success(require_admin(ADMIN, "do things")) is ADMIN

    def test_manufacturer_is_refused_with_action_in_message(self) -> None:
        error = ResultAssertions.assert_failure(
            require_admin(MAKER, "revoke certificates"), ErrorCode.AUTHORIZATION_ERROR
        )

        assert error.message == "Only administrators may revoke certificates"


class TestVisibleTo:
    def test_owner_and_admin_see_submission(self) -> None:
        submission = Submission(record=make_record(), created_by=MAKER.user_id)

        ResultAssertions.assert_success(visible_to(MAKER)(submission))
        ResultAssertions.assert_success(visible_to(ADMIN)(submission))

    def test_other_manufacturer_gets_not_found(self) -> None:
        """
        GIVEN a submission owned by one manufacturer
        WHEN another manufacturer asks for it
        THEN it looks absent rather than forbidden.
        """
        submission = Submission(record=make_record(), created_by=MAKER.user_id)

        ResultAssertions.assert_failure(visible_to(OTHER_MAKER)(submission), ErrorCode.NOT_FOUND)


class TestReportToResult:
    def test_valid_report_is_success(self) -> None:
        ResultAssertions.assert_success(report_to_result(ValidationReport()))

    def test_invalid_report_carries_every_issue(self) -> None:
        issues = [
            ValidationIssue("products", "products section is required"),
            ValidationIssue("components", "components section is required"),
        ]

        result = report_to_result(ValidationReport.of(issues))

        assert ResultAssertions.assert_failure_fields(result) == ["products", "components"]
