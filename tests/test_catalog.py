import pytest

from n8n_flow_manager.core.catalog import (
    DEFAULT_PATTERNS,
    PatternCatalog,
    TaskPattern,
    TaskType,
)
from n8n_flow_manager.core.classifier import IntentClassifier


def test_catalog_covers_every_task_type_but_unknown():
    catalog = PatternCatalog()
    assert len(catalog) == len(TaskType) - 1
    assert TaskType.UNKNOWN not in catalog
    assert catalog.task_types[0] is TaskType.SYSTEM_ANALYSIS
    assert catalog.task_types[-1] is TaskType.GENERAL_QUERY


def test_unknown_is_reserved():
    with pytest.raises(ValueError):
        PatternCatalog({TaskType.UNKNOWN: TaskPattern(description="x", trigger_phrases=("x",))})


def test_trigger_phrases_are_normalized_and_required():
    pattern = TaskPattern(description="d", trigger_phrases=("  List   Workflows ",))
    assert pattern.trigger_phrases == ("list workflows",)
    with pytest.raises(ValueError):
        TaskPattern(description="d", trigger_phrases=())
    with pytest.raises(ValueError):
        TaskPattern(description="d", trigger_phrases=("   ",))


def test_no_phrase_contains_an_earlier_rows_phrase():
    seen = []
    for task_type, pattern in PatternCatalog():
        for phrase in pattern.trigger_phrases:
            for earlier_type, earlier in seen:
                assert earlier not in phrase, (task_type, phrase, earlier_type, earlier)
        seen.extend((task_type, p) for p in pattern.trigger_phrases)


def test_every_exact_trigger_phrase_classifies_to_its_row():
    classifier = IntentClassifier()
    for task_type, pattern in DEFAULT_PATTERNS.items():
        for phrase in pattern.trigger_phrases:
            result = classifier.classify(phrase)
            assert result.type is task_type, phrase
            assert result.confidence >= 0.99


def test_synonym_groups():
    catalog = PatternCatalog()
    assert catalog.are_synonyms("check", "scan")
    assert catalog.are_synonyms("flow", "workflow")
    assert not catalog.are_synonyms("export", "import")


def test_describe_lists_examples():
    rows = PatternCatalog().describe()
    assert [r["type"] for r in rows][:2] == ["system_analysis", "system_improvement"]
    assert all(r["description"] and r["example_phrases"] for r in rows)


def test_catalog_is_read_only():
    catalog = PatternCatalog()
    with pytest.raises(TypeError):
        catalog._patterns[TaskType.GENERAL_QUERY] = None
