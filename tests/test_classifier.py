from n8n_flow_manager.core.catalog import PatternCatalog, TaskPattern, TaskType
from n8n_flow_manager.core.classifier import IntentClassifier, normalize, tokenize


def test_normalize_and_tokenize():
    text = normalize("Export  Workflow: ABC!!")
    assert text == "export workflow: abc"
    assert tokenize(text) == ["export", "workflow", "abc"]


def test_exact_phrase_scores_full_confidence():
    result = IntentClassifier().classify("analyze the system")
    assert result.type is TaskType.SYSTEM_ANALYSIS
    assert result.confidence == 1.0
    assert result.matched_pattern == "analyze the system"
    assert not result.ambiguous


def test_synonyms_count_as_found_words():
    result = IntentClassifier().classify("scan system")
    assert result.type is TaskType.SYSTEM_ANALYSIS
    assert result.matched_pattern == "analyze system"
    assert result.confidence == 1.0


def test_export_with_identifier():
    result = IntentClassifier().classify("export workflow abc123")
    assert result.type is TaskType.WORKFLOW_EXPORT


def test_gibberish_is_unknown():
    result = IntentClassifier().classify("zzz qqq banana")
    assert result.type is TaskType.UNKNOWN
    assert result.confidence < 0.3
    assert result.matched_pattern is None
    assert result.ambiguous
    assert result.closest() == []


def test_empty_instruction_is_unknown():
    result = IntentClassifier().classify("")
    assert result.type is TaskType.UNKNOWN
    assert result.confidence == 0.0


def _catalog(*rows):
    return PatternCatalog(
        {t: TaskPattern(description=t.value, trigger_phrases=(p,)) for t, p in rows},
        synonym_groups=(),
    )


def test_ties_go_to_the_first_row():
    first = _catalog((TaskType.STATUS_LISTING, "show stuff"), (TaskType.GENERAL_QUERY, "show stuff"))
    second = _catalog((TaskType.GENERAL_QUERY, "show stuff"), (TaskType.STATUS_LISTING, "show stuff"))
    assert IntentClassifier(first).classify("show stuff").type is TaskType.STATUS_LISTING
    assert IntentClassifier(second).classify("show stuff").type is TaskType.GENERAL_QUERY


def test_threshold():
    catalog = _catalog((TaskType.STATUS_LISTING, "alpha beta gamma delta"))
    classifier = IntentClassifier(catalog)
    low = classifier.classify("alpha")
    assert low.type is TaskType.UNKNOWN
    assert low.confidence == 0.25
    assert low.closest() == [TaskType.STATUS_LISTING]
    assert classifier.classify("alpha beta").type is TaskType.STATUS_LISTING


def test_candidate_scores_cover_every_row():
    result = IntentClassifier().classify("list workflows")
    assert result.type is TaskType.STATUS_LISTING
    assert set(result.candidate_scores) == {t.value for t in PatternCatalog().task_types}
    assert result.candidate_scores["status_listing"] == 2.0


def test_classification_is_deterministic():
    classifier = IntentClassifier()
    assert classifier.classify("check git status") == classifier.classify("check git status")


def test_partial_tokens_match_longer_phrase_words():
    classifier = IntentClassifier()
    listing = classifier.classify("list flows")
    assert listing.type is TaskType.STATUS_LISTING
    assert listing.matched_pattern == "list workflows"
    assert listing.confidence == 1.0

    shown = classifier.classify("show flows")
    assert shown.type is TaskType.STATUS_LISTING
    assert shown.matched_pattern == "show workflows"
