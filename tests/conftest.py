import pytest
import requests


class FakeProvider:
    """Records remote operations and answers with canned values."""

    def __init__(self, value=None, fail_on=None, delete_fail=()):
        self.value = value
        self.fail_on = fail_on
        self.delete_fail = set(delete_fail)
        self.calls = []
        self.hooks = {}

    def _maybe_fail(self, op):
        self.calls.append(op)
        hook = self.hooks.get(op)
        if hook:
            hook()
        if self.fail_on == op:
            raise requests.ConnectionError(f"{op} unreachable")

    def input_data(self, object_name, urls):
        self._maybe_fail("input_data")
        self.input_args = (object_name, list(urls))
        return {"object_name": object_name}

    def apply_prompt(self, created_object_names, prompt_string, input_object_name, mode="combine_events"):
        self._maybe_fail("apply_prompt")
        self.prompt = prompt_string
        self.prompt_args = (list(created_object_names), input_object_name, mode)
        return {"object_name": created_object_names[0]}

    def return_data(self, object_name, return_type="json"):
        self._maybe_fail("return_data")
        return {"value": self.value}

    def delete_object(self, object_name):
        self.calls.append(("delete", object_name))
        if object_name in self.delete_fail:
            raise requests.HTTPError(f"404 for {object_name}")


class FakeResponse:
    def __init__(self, payload=None, status_code=200, json_error=None):
        self.payload = payload
        self.status_code = status_code
        self.json_error = json_error

    def json(self):
        if self.json_error:
            raise self.json_error
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeHttpSession:
    """Stand-in for requests.Session; queue responses or exceptions."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.headers = {}
        self.requests = []
        self.closed = False

    def _next(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)

    def delete(self, url, **kwargs):
        return self._next("DELETE", url, **kwargs)


@pytest.fixture
def provider():
    return FakeProvider(value=[{"name": "Widget", "price": "9.99"}])
