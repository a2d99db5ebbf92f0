import pytest

from transmute_ai.pipeline import QualityValidator
from transmute_ai.schemas.domain import ArtifactBundle, ArtifactFile

README = ArtifactFile(path="README.md", content="# Billing\n\nGenerated invoice service and customer UI.\n")


def _bundle(*files):
    return ArtifactBundle(files=list(files))


def _check(report, name):
    return next(c for c in report.checks if c.name == name)


def test_clean_bundle_passes_with_full_score():
    report = QualityValidator().validate(
        _bundle(
            README,
            ArtifactFile(path="srv/service.ts", content='export const route = "/invoices/{id}";'),
            ArtifactFile(path="package.json", content='{"name": "billing"}'),
        )
    )

    assert report.passed is True
    assert report.score == 100
    assert report.recommendations == []


def test_empty_bundle_fails():
    report = QualityValidator().validate(_bundle())

    assert report.passed is False
    assert _check(report, "artifacts_present").passed is False
    assert _check(report, "required_files").passed is False


@pytest.mark.parametrize(
    "bad_file,check_name",
    [
        (ArtifactFile(path="srv/service.ts", content="function f() { return [1, 2; }"), "balanced_delimiters"),
        (ArtifactFile(path="package.json", content="{name: billing}"), "json_manifests"),
        (ArtifactFile(path="srv/empty.ts", content="   \n"), "non_empty_files"),
        (ArtifactFile(path="README.md", content="dup"), "unique_paths"),
    ],
)
def test_error_checks_fail_the_report(bad_file, check_name):
    report = QualityValidator().validate(_bundle(README, bad_file))

    assert report.passed is False
    assert _check(report, check_name).passed is False
    assert _check(report, check_name).message in report.recommendations


def test_brackets_inside_strings_are_ignored():
    source = ArtifactFile(path="app/view.ts", content="const smile = ':)'; const open = \"[\";")
    assert QualityValidator().validate(_bundle(README, source)).passed is True


def test_warnings_lower_the_score_without_failing():
    validator = QualityValidator(required_files=[], forbidden_patterns=["eval("])
    report = validator.validate(_bundle(ArtifactFile(path="app/main.js", content="eval(input);")))

    assert report.passed is True
    assert report.score < 100
    assert _check(report, "documentation").passed is False
    assert _check(report, "forbidden_patterns").message == "Forbidden patterns found in: app/main.js"


def test_required_files_match_nested_paths():
    validator = QualityValidator(required_files=["README.md", "package.json"])
    report = validator.validate(
        _bundle(README, ArtifactFile(path="app/package.json", content='{"name": "ui"}'))
    )

    assert _check(report, "required_files").passed is True
