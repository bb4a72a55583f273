import pytest

from n8n_flow_manager.core.catalog import TaskType
from n8n_flow_manager.core.extractor import ExtractedParameters, ParameterExtractor, extract_parameters


@pytest.fixture
def extractor():
    return ParameterExtractor()


def test_plain_instruction_has_no_parameters(extractor):
    assert extractor.extract("analyze the system", TaskType.SYSTEM_ANALYSIS).to_dict() == {}


def test_priority_and_apply(extractor):
    params = extractor.extract("fix all critical issues now, apply it", TaskType.SYSTEM_IMPROVEMENT)
    assert params.to_dict() == {"priority": "critical", "apply": True}


def test_workflow_identifier(extractor):
    params = extractor.extract("export workflow abc123", TaskType.WORKFLOW_EXPORT)
    assert params.to_dict() == {"workflow_id": "abc123"}


@pytest.mark.parametrize(
    "text, expected",
    [
        ("test workflow id: XY_9", "XY_9"),
        ("optimize workflow named orders-sync", "orders-sync"),
        ("export workflow to disk", None),
        ("show workflow status", None),
        ("search workflows for slack", None),
    ],
)
def test_workflow_identifier_rules(extractor, text, expected):
    assert extractor.extract(text, TaskType.WORKFLOW_TESTING).workflow_id == expected


def test_file_path(extractor):
    params = extractor.extract("import workflow file flows/orders.json", TaskType.WORKFLOW_IMPORT)
    assert params.file_path == "flows/orders.json"
    assert params.workflow_id is None


@pytest.mark.parametrize(
    "text, expected",
    [
        ("priority: high please", "high"),
        ("priority: immediate", "critical"),
        ("urgent fix", "critical"),
        ("do this immediately", "critical"),
        ("this is important", "high"),
        ("normal priority cleanup", "medium"),
        ("minor cleanup", "low"),
        ("low priority tidy up", "low"),
        ("list workflows", None),
    ],
)
def test_priority(extractor, text, expected):
    assert extractor.extract(text, TaskType.SYSTEM_IMPROVEMENT).priority == expected


def test_flags(extractor):
    assert extractor.extract("preview improvements", TaskType.SYSTEM_IMPROVEMENT).dry_run
    assert extractor.extract("dry-run fix issues", TaskType.SYSTEM_IMPROVEMENT).dry_run
    assert extractor.extract("execute the fixes", TaskType.SYSTEM_IMPROVEMENT).apply
    assert extractor.extract("run a detailed analysis", TaskType.SYSTEM_ANALYSIS).detailed
    assert extractor.extract("export every workflow", TaskType.WORKFLOW_EXPORT).all


def test_active_and_inactive_are_exclusive(extractor):
    inactive = extractor.extract("list inactive workflows", TaskType.STATUS_LISTING)
    assert inactive.inactive_only and inactive.active_only is None
    active = extractor.extract("list active workflows", TaskType.STATUS_LISTING)
    assert active.active_only and active.inactive_only is None


def test_upgrade_extras_only_for_upgrade_planning(extractor):
    text = "create upgrade plan within 3 months, low risk"
    params = extractor.extract(text, TaskType.UPGRADE_PLANNING)
    assert params.timeline == "3 months"
    assert params.risk == "low"
    assert "timeline" not in extractor.extract(text, TaskType.SYSTEM_ANALYSIS).to_dict()


def test_search_query(extractor):
    assert extractor.extract("search workflows for slack alerts", TaskType.WORKFLOW_SEARCH).query == "slack alerts"
    assert extractor.extract("find slack workflows", TaskType.WORKFLOW_SEARCH).query == "slack"
    assert extractor.extract("find workflow templates", TaskType.WORKFLOW_SEARCH).query is None


def test_extraction_is_idempotent_and_pure():
    text = "Apply fixes to workflow abc123, priority: high"
    first = extract_parameters(text, TaskType.SYSTEM_IMPROVEMENT)
    second = extract_parameters(text, TaskType.SYSTEM_IMPROVEMENT)
    assert first == second
    assert text == "Apply fixes to workflow abc123, priority: high"


def test_to_dict_omits_absent_fields():
    assert ExtractedParameters(apply=False).to_dict() == {"apply": False}
    assert ExtractedParameters().to_dict() == {}
