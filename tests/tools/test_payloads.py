"""Tests for stackbuddy.tools.payloads - decode_payload classification"""

import json

import pytest

from stackbuddy.tools.payloads import (
    ApiErrorPayload,
    ApiSuccessPayload,
    EntityRef,
    FormOverviewPayload,
    TextPayload,
    decode_payload,
)


OVERVIEW = {
    "formId": "5150",
    "submissions": 12,
    "submissionsToday": 2,
    "version": 3,
    "fieldCount": 8,
    "url": "https://example.formstack.com/forms/intake",
    "isActive": True,
    "isWorkflowForm": False,
    "submitActions": [{"id": "w1", "name": "https://hooks.example.com/a"}],
    "notificationEmails": [],
    "confirmationEmails": [{"id": "c1", "name": "Thanks"}],
}


class TestErrors:

    def test_error_items(self):
        payload = decode_payload({"isSuccess": False, "errorItems": ["Field update failed"]})
        assert payload == ApiErrorPayload(error_items=("Field update failed",))

    def test_error_items_win_over_is_success(self):
        payload = decode_payload({"isSuccess": True, "errorItems": ["partial failure"]})
        assert isinstance(payload, ApiErrorPayload)

    def test_is_success_false_without_items(self):
        payload = decode_payload({"isSuccess": False})
        assert isinstance(payload, ApiErrorPayload)
        assert len(payload.error_items) == 1

    def test_json_string_error(self):
        raw = json.dumps({"isSuccess": False, "errorItems": ["a", "b"]})
        assert decode_payload(raw) == ApiErrorPayload(error_items=("a", "b"))


class TestOverview:

    def test_bare_overview(self):
        payload = decode_payload(OVERVIEW)
        assert isinstance(payload, FormOverviewPayload)
        assert payload.form_id == "5150"
        assert payload.submissions_today == 2
        assert payload.submit_actions == (EntityRef(id="w1", name="https://hooks.example.com/a"),)
        assert payload.notification_emails == ()

    def test_overview_inside_success_response(self):
        payload = decode_payload({"isSuccess": True, "response": OVERVIEW})
        assert isinstance(payload, FormOverviewPayload)
        assert payload.field_count == 8

    def test_form_id_alone_is_not_overview(self):
        payload = decode_payload({"isSuccess": True, "response": {"formId": "1"}})
        assert payload == ApiSuccessPayload(response={"formId": "1"})


class TestOther:

    def test_success_response(self):
        payload = decode_payload({"isSuccess": True, "response": {"fieldId": "9"}})
        assert payload == ApiSuccessPayload(response={"fieldId": "9"})

    def test_plain_string(self):
        assert decode_payload("all done") == TextPayload(text="all done")

    def test_json_list_string_is_text(self):
        assert decode_payload("[1, 2]") == TextPayload(text="[1, 2]")

    def test_none(self):
        assert decode_payload(None) == TextPayload()

    def test_unrelated_dict_is_text(self):
        payload = decode_payload({"foo": "bar"})
        assert isinstance(payload, TextPayload)
        assert json.loads(payload.text) == {"foo": "bar"}

    def test_already_decoded_passes_through(self):
        payload = TextPayload(text="x")
        assert decode_payload(payload) is payload
