import pytest
import requests

from template_scraper.errors import ExtractionCancelled
from template_scraper.workflow import (
    ExtractionRequest,
    ExtractionWorkflow,
    PARSE_ERROR_MARKER,
    build_prompt,
    recover_rows,
)

from conftest import FakeProvider


REQUEST = ExtractionRequest("https://shop.test", ("name", "price"), 25)


class TestRecoverRows:
    def test_native_list_used_directly(self):
        rows = [{"name": "A"}, {"name": "B"}]
        assert recover_rows(rows) == rows

    def test_embedded_array_literal(self):
        value = 'prefix text [{"x":"1"}] suffix'
        assert recover_rows(value) == [{"x": "1"}]

    def test_whole_string_object(self):
        assert recover_rows('{"name": "Solo"}') == [{"name": "Solo"}]

    def test_broken_array_falls_back_to_whole_string(self):
        # the greedy match "[...] and [x]" is not JSON, the whole value is
        value = '{"note": "see [1] and [x]"}'
        assert recover_rows(value) == [{"note": "see [1] and [x]"}]

    def test_unparseable_string_gives_one_diagnostic_row(self):
        rows = recover_rows("sorry, no products here")
        assert len(rows) == 1
        assert rows[0]["error"] == PARSE_ERROR_MARKER
        assert rows[0]["raw_data"] == "sorry, no products here"

    def test_missing_value_gives_no_rows(self):
        assert recover_rows(None) == []
        assert recover_rows(42) == []

    def test_non_mapping_items_are_kept_as_raw_data(self):
        assert recover_rows(["a", {"name": "B"}]) == [{"raw_data": "a"}, {"name": "B"}]


def test_prompt_mentions_headers_limit_and_placeholder():
    prompt = build_prompt(["name", "price"], 25)
    assert "CSV columns: name, price" in prompt
    assert "up to 25 products" in prompt
    assert '"name", "price"' in prompt
    assert '"N/A"' in prompt
    assert "{website_data}" in prompt


def test_run_calls_three_stages_in_order():
    provider = FakeProvider(value='Here you go: [{"name": "Widget", "price": "3"}]')
    progress = []
    created = []
    wf = ExtractionWorkflow(
        provider,
        on_progress=lambda p, s: progress.append(p),
        on_object_created=created.append,
    )

    rows = wf.run(REQUEST)

    assert provider.calls == ["input_data", "apply_prompt", "return_data"]
    assert provider.input_args == ("website_data", ["https://shop.test"])
    assert provider.prompt_args == (["extracted_products"], "website_data", "combine_events")
    assert "up to 25 products" in provider.prompt
    assert progress == [0, 25, 50, 75, 100]
    assert created == ["website_data", "extracted_products"]
    assert rows == [{"name": "Widget", "price": "3"}]


def test_transport_error_aborts_remaining_stages():
    provider = FakeProvider(fail_on="apply_prompt")
    progress = []
    wf = ExtractionWorkflow(provider, on_progress=lambda p, s: progress.append(p))

    with pytest.raises(requests.ConnectionError):
        wf.run(REQUEST)

    assert provider.calls == ["input_data", "apply_prompt"]
    assert 100 not in progress


def test_cancel_between_stages_stops_the_run():
    provider = FakeProvider(value=[])
    cancelled = {"flag": False}
    provider.hooks["input_data"] = lambda: cancelled.update(flag=True)
    wf = ExtractionWorkflow(provider, is_cancelled=lambda: cancelled["flag"])

    with pytest.raises(ExtractionCancelled):
        wf.run(REQUEST)

    # the call in flight completes, nothing after it is issued
    assert provider.calls == ["input_data"]
