"""Tests for the validation runner."""

from __future__ import annotations

import pytest

from advisory_validator.errors import RepositoryUnreachableError
from advisory_validator.repository import RepositoryCache
from advisory_validator.validation import (
    DEFAULT_RULES,
    Finding,
    validate_advisories,
    validate_advisory,
)
from advisory_validator.validation.rules import AdvisoryContext, AdvisoryRule
from tests.conftest import NOW, VALID_ADVISORY, FakeRepositoryFactory, advisory


class TestValidateAdvisory:
    """Tests for validate_advisory()."""

    @pytest.mark.unit
    def test_valid_advisory_has_no_findings(self, repositories: RepositoryCache) -> None:
        findings = validate_advisory(
            "acme/widget/CVE-2021-1234.yaml", VALID_ADVISORY, repositories=repositories, now=NOW
        )

        assert findings == []

    @pytest.mark.unit
    def test_wrong_extension_stops_checks(self, repositories: RepositoryCache) -> None:
        findings = validate_advisory(
            "acme/widget/CVE-2021-1234.yml", "not: [valid", repositories=repositories, now=NOW
        )

        assert [f.message for f in findings] == ['The file extension should be ".yaml".']
        assert findings[0].rule_name == "extension"

    @pytest.mark.unit
    def test_parse_error_is_a_single_finding(self, repositories: RepositoryCache) -> None:
        findings = validate_advisory(
            "acme/widget/CVE-2021-1234.yaml",
            "title: [unclosed\nbogus: key\n",
            repositories=repositories,
            now=NOW,
        )

        assert len(findings) == 1
        assert findings[0].message.startswith("YAML is not valid (")
        assert findings[0].message.endswith(").")
        assert len(repositories) == 0

    @pytest.mark.unit
    def test_findings_follow_rule_order(self, repositories: RepositoryCache) -> None:
        text = advisory(
            """
            title: Widget issue
            severity: high
            reference: composer://acme/widget
            cve: GHSA-1234
            branches:
                develop:
                    time: ~
                    versions: ['<2.0.0', '<3.0.0']
            """
        )

        findings = validate_advisory(
            "acme/widget/advisory.yaml", text, repositories=repositories, now=NOW
        )

        assert [f.message for f in findings] == [
            'Key "severity" is not supported.',
            'Key "link" is required.',
            '"cve" must be a valid CVE number when provided.',
            'Invalid branch name "develop".',
            '"versions" cannot have multiple upper bounds for branch "develop".',
            "The filename should be GHSA-1234.yaml.",
        ]

    @pytest.mark.unit
    def test_cve_filename_checked_without_branches(self, repositories: RepositoryCache) -> None:
        text = advisory(
            """
            title: Widget issue
            link: https://example.com
            reference: composer://acme/widget
            cve: CVE-2021-1234
            """
        )

        findings = validate_advisory(
            "acme/widget/advisory.yaml", text, repositories=repositories, now=NOW
        )

        assert [f.message for f in findings] == [
            'Key "branches" is required.',
            "The filename should be CVE-2021-1234.yaml.",
        ]

    @pytest.mark.unit
    def test_windows_separators_are_normalized(self, repositories: RepositoryCache) -> None:
        findings = validate_advisory(
            "acme\\widget\\CVE-2021-1234.yaml", VALID_ADVISORY, repositories=repositories, now=NOW
        )

        assert findings == []

    @pytest.mark.unit
    def test_custom_rules(self, repositories: RepositoryCache) -> None:
        class TitleLength(AdvisoryRule):
            name = "title_length"
            description = "Titles must be short"

            def check(self, ctx: AdvisoryContext) -> list[Finding]:
                return [self._finding(ctx, "Title too long")]

        findings = validate_advisory(
            "acme/widget/CVE-2021-1234.yaml",
            VALID_ADVISORY,
            repositories=repositories,
            now=NOW,
            rules=[TitleLength()],
        )

        assert [f.rule_name for f in findings] == ["title_length"]

    @pytest.mark.unit
    def test_default_rules_are_immutable(self) -> None:
        assert isinstance(DEFAULT_RULES, tuple)
        assert len({rule.name for rule in DEFAULT_RULES}) == len(DEFAULT_RULES)


class TestValidateAdvisories:
    """Tests for validate_advisories()."""

    @pytest.mark.unit
    def test_clean_corpus(self, repositories: RepositoryCache) -> None:
        report = validate_advisories(
            [("acme/widget/CVE-2021-1234.yaml", VALID_ADVISORY)],
            repositories=repositories,
            now=NOW,
        )

        assert report.passed
        assert report.messages == {}

    @pytest.mark.unit
    def test_findings_grouped_by_path_in_first_seen_order(
        self, repositories: RepositoryCache
    ) -> None:
        report = validate_advisories(
            [
                ("zeta/pkg/a.txt", ""),
                ("acme/widget/CVE-2021-1234.yaml", VALID_ADVISORY),
                ("acme/widget/broken.yaml", ": : :"),
            ],
            repositories=repositories,
            now=NOW,
        )

        assert list(report.messages) == ["zeta/pkg/a.txt", "acme/widget/broken.yaml"]
        assert report.file_count == 2

    @pytest.mark.unit
    def test_repository_client_created_once_per_url(
        self, repositories: RepositoryCache, repository_factory: FakeRepositoryFactory
    ) -> None:
        second = VALID_ADVISORY.replace("CVE-2021-1234", "CVE-2022-0001")

        validate_advisories(
            [
                ("acme/widget/CVE-2021-1234.yaml", VALID_ADVISORY),
                ("acme/widget/CVE-2022-0001.yaml", second),
            ],
            repositories=repositories,
            now=NOW,
        )

        repository = repository_factory.created["https://repo.packagist.org"]
        assert list(repository_factory.created) == ["https://repo.packagist.org"]
        assert repository.searches == ["acme/widget", "acme/widget"]

    @pytest.mark.unit
    def test_rerun_is_idempotent(self, repositories: RepositoryCache) -> None:
        corpus = [
            ("acme/widget/CVE-2021-1234.yaml", VALID_ADVISORY),
            ("acme/widget/notes.md", "# notes"),
            ("acme/other/CVE-2021-1234.yaml", VALID_ADVISORY),
        ]

        first = validate_advisories(corpus, repositories=repositories, now=NOW)
        second = validate_advisories(corpus, repositories=repositories, now=NOW)

        assert first.messages == second.messages
        assert not first.passed

    @pytest.mark.unit
    def test_progress_callback(self, repositories: RepositoryCache) -> None:
        seen: list[str] = []

        validate_advisories(
            [("acme/widget/CVE-2021-1234.yaml", VALID_ADVISORY), ("x/y/z.txt", "")],
            repositories=repositories,
            now=NOW,
            on_advisory=seen.append,
        )

        assert seen == ["acme/widget/CVE-2021-1234.yaml", "x/y/z.txt"]

    @pytest.mark.unit
    def test_repository_failure_aborts_the_run(self) -> None:
        def unreachable(url: str):
            raise RepositoryUnreachableError(url, "connection refused")

        cache = RepositoryCache(factory=unreachable)

        with pytest.raises(RepositoryUnreachableError):
            validate_advisories(
                [("acme/widget/CVE-2021-1234.yaml", VALID_ADVISORY)],
                repositories=cache,
                now=NOW,
            )
