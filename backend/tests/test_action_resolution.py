"""Tests for turning a raw model reply into validated finance actions.

Covers:
- Parameter validation against closed value sets
- Relative date ranges from the user's wording
- Cross-action reconciliation
- Reply resolution: splicing, fallback extraction, default action
"""

import json
import unittest
from datetime import datetime
from zoneinfo import ZoneInfo

from finops.services.ai.action_analysis.catalog import (
    DEFAULT_ACTION_CODE,
    GENERATE_STATEMENT,
    SEND_EMAIL,
    build_default_catalog,
)
from finops.services.ai.action_analysis.dates import MAX_RELATIVE_DAYS, relative_days, resolve_date_range
from finops.services.ai.action_analysis.fallback import fallback_actions
from finops.services.ai.action_analysis.reconcile import reconcile
from finops.services.ai.action_analysis.service import resolve_reply
from finops.services.ai.action_analysis.validation import validate_parameters
from finops.services.ai.common.json_tools import find_json_block, parse_json_block
from finops.services.ai.common.providers.mock import MOCK_REPLY

ISTANBUL = ZoneInfo("Europe/Istanbul")
NOW = datetime(2026, 10, 19, 14, 30, tzinfo=ISTANBUL)


def _fenced(payload, before="Talebiniz işleme alındı.\n\n", after="\n\nİyi günler."):
    return f"{before}```json\n{json.dumps(payload, ensure_ascii=False)}\n```{after}"


def _payload_of(text):
    payload, _ = parse_json_block(text, find_json_block(text))
    return payload


class ParameterValidationTests(unittest.TestCase):
    def setUp(self):
        self.catalog = build_default_catalog()

    def test_every_enumerated_field_keeps_members_and_nulls_others(self):
        for definition in self.catalog.definitions():
            for name, alternatives in definition.enumerations.items():
                for member in alternatives:
                    cleaned = validate_parameters({name: member}, definition)
                    self.assertEqual(cleaned[name], member, f"{definition.code}.{name}")

                combined = ",".join(alternatives[:2])
                for invalid in ("both", combined, "|".join(alternatives), "   "):
                    cleaned = validate_parameters({name: invalid}, definition)
                    self.assertIsNone(cleaned[name], f"{definition.code}.{name}={invalid!r}")

    def test_invalid_direction_leaves_other_parameters_untouched(self):
        statement = self.catalog[GENERATE_STATEMENT]
        cleaned = validate_parameters(
            {"direction": "both", "order": "desc", "limit": 10, "category": "groceries", "note": "x"},
            statement,
        )
        self.assertEqual(
            cleaned,
            {"direction": None, "order": "desc", "limit": 10, "category": "groceries", "note": "x"},
        )

    def test_non_string_and_null_values_pass_through(self):
        statement = self.catalog[GENERATE_STATEMENT]
        cleaned = validate_parameters({"direction": None, "currency": 5}, statement)
        self.assertEqual(cleaned, {"direction": None, "currency": 5})

    def test_input_is_not_mutated(self):
        statement = self.catalog[GENERATE_STATEMENT]
        raw = {"direction": "both", "content": "raw request"}
        cleaned = validate_parameters(raw, statement)
        self.assertEqual(raw, {"direction": "both", "content": "raw request"})
        self.assertEqual(cleaned, {"direction": None})

    def test_volatile_fields_removed(self):
        definition = self.catalog[SEND_EMAIL]
        cleaned = validate_parameters({"subject": "Ekstre", "content": "c", "extraContent": "e"}, definition)
        self.assertEqual(cleaned, {"subject": "Ekstre"})

    def test_empty_parameters(self):
        self.assertEqual(validate_parameters(None, self.catalog[SEND_EMAIL]), {})
        self.assertEqual(validate_parameters({}, self.catalog[SEND_EMAIL]), {})


class RelativeDateTests(unittest.TestCase):
    def test_last_three_months(self):
        date_range = resolve_date_range("Son 3 ayın hesap ekstresini gönder", NOW)
        self.assertEqual(date_range.relative_days, 90)
        self.assertEqual(date_range.start_date, "2026-07-21T00:00:00")
        self.assertEqual(date_range.end_date, "2026-10-19T23:59:59")
        self.assertTrue(date_range.is_relative)

    def test_default_thirty_days(self):
        date_range = resolve_date_range("Hesap ekstresini gönder", NOW)
        self.assertEqual(date_range.relative_days, 30)
        self.assertEqual(date_range.start_date, "2026-09-19T00:00:00")
        self.assertEqual(date_range.end_date, "2026-10-19T23:59:59")

    def test_units(self):
        self.assertEqual(relative_days("son 2 yıl"), 730)
        self.assertEqual(relative_days("son 1 sene"), 365)
        self.assertEqual(relative_days("son 10 gün"), 10)
        self.assertEqual(relative_days("son 10 gun"), 10)
        self.assertEqual(relative_days("son 1 yil"), 365)
        self.assertEqual(relative_days("SON 6 AY"), 180)
        self.assertEqual(relative_days("son 5ay"), 150)

    def test_no_phrase_or_empty_text(self):
        self.assertEqual(relative_days(None), 30)
        self.assertEqual(relative_days(""), 30)
        self.assertEqual(relative_days("geçen ay"), 30)
        self.assertEqual(relative_days("bonson 3 ay"), 30)

    def test_uppercase_turkish_units(self):
        self.assertEqual(relative_days("SON 2 YİL ekstre"), 730)
        self.assertEqual(relative_days("SON 2 YIL"), 730)
        self.assertEqual(relative_days("SON 3 GÜN"), 3)
        self.assertEqual(relative_days("Son 1 Sene"), 365)

    def test_oversized_period_is_capped(self):
        date_range = resolve_date_range("son 999999 yıl", NOW)
        self.assertEqual(date_range.relative_days, MAX_RELATIVE_DAYS)
        self.assertEqual(date_range.end_date, "2026-10-19T23:59:59")

    def test_overlong_number_ignored(self):
        self.assertEqual(relative_days("son " + "9" * 5000 + " ay"), 30)

    def test_first_phrase_wins(self):
        self.assertEqual(relative_days("son 7 gün, hatta son 2 ay"), 7)

    def test_end_date_uses_business_day_not_utc(self):
        late_evening = datetime(2026, 10, 19, 23, 30, tzinfo=ISTANBUL)
        date_range = resolve_date_range("son 1 gün", late_evening)
        self.assertEqual(date_range.end_date, "2026-10-19T23:59:59")
        self.assertEqual(date_range.start_date, "2026-10-18T00:00:00")


class ReconcileTests(unittest.TestCase):
    def test_email_sets_statement_flag(self):
        parameters = {GENERATE_STATEMENT: {"emailFlag": False}, SEND_EMAIL: {}}
        applied = reconcile([GENERATE_STATEMENT, SEND_EMAIL], parameters)
        self.assertEqual(len(applied), 1)
        self.assertIs(parameters[GENERATE_STATEMENT]["emailFlag"], True)

    def test_creates_missing_target_parameters(self):
        parameters = {}
        reconcile([SEND_EMAIL, GENERATE_STATEMENT], parameters)
        self.assertEqual(parameters, {GENERATE_STATEMENT: {"emailFlag": True}})

    def test_statement_alone_untouched(self):
        parameters = {GENERATE_STATEMENT: {"emailFlag": False}}
        self.assertEqual(reconcile([GENERATE_STATEMENT], parameters), [])
        self.assertIs(parameters[GENERATE_STATEMENT]["emailFlag"], False)


class FallbackTests(unittest.TestCase):
    def setUp(self):
        self.catalog = build_default_catalog()

    def test_selected_actions_list_recovered(self):
        text = 'Broken: {"selectedActions": ["BLOCK_CARD", "send email"], "parameters": {,}'
        self.assertEqual(fallback_actions(text, self.catalog), ["BLOCK_CARD", SEND_EMAIL])

    def test_unquoted_list(self):
        text = "selectedActions = [TRANSFER_FUNDS, UNKNOWN_CODE]"
        self.assertEqual(fallback_actions(text, self.catalog), ["TRANSFER_FUNDS"])

    def test_code_mentions(self):
        text = "I would run UNBLOCK_CARD and then LOG_CUSTOMER_INTERACTION."
        self.assertEqual(fallback_actions(text, self.catalog), ["UNBLOCK_CARD", "LOG_CUSTOMER_INTERACTION"])

    def test_default_when_nothing_recognized(self):
        self.assertEqual(fallback_actions("Anlayamadım.", self.catalog), [DEFAULT_ACTION_CODE])
        self.assertEqual(fallback_actions("", self.catalog), [DEFAULT_ACTION_CODE])
        self.assertEqual(fallback_actions(None, self.catalog), [DEFAULT_ACTION_CODE])


class ResolveReplyTests(unittest.TestCase):
    def setUp(self):
        self.catalog = build_default_catalog()

    def test_statement_with_email(self):
        raw = _fenced(
            {
                "selectedActions": [GENERATE_STATEMENT, SEND_EMAIL],
                "parameters": {
                    GENERATE_STATEMENT: {"direction": "in,out", "order": "desc", "emailFlag": False},
                    SEND_EMAIL: {"subject": "Ekstre", "content": "tekrar"},
                },
            }
        )
        resolved = resolve_reply(raw, "Son 3 ayın ekstresini mail at", self.catalog, NOW)

        self.assertFalse(resolved.used_fallback)
        self.assertEqual(resolved.selected_actions, [GENERATE_STATEMENT, SEND_EMAIL])
        statement = resolved.actions[0].parameters
        self.assertIsNone(statement["direction"])
        self.assertEqual(statement["order"], "desc")
        self.assertIs(statement["emailFlag"], True)
        self.assertEqual(statement["startDate"], "2026-07-21T00:00:00")
        self.assertEqual(statement["endDate"], "2026-10-19T23:59:59")
        self.assertEqual(resolved.actions[1].parameters, {"subject": "Ekstre"})
        self.assertEqual(resolved.date_range.relative_days, 90)

    def test_corrected_json_is_spliced_and_outer_text_kept(self):
        before = "Merhaba,\n\nEkstreniz hazırlanacak.\n\n"
        after = "\n\nSaygılarımızla."
        raw = _fenced(
            {
                "selectedActions": [GENERATE_STATEMENT],
                "parameters": {GENERATE_STATEMENT: {"direction": "both"}},
                "content": "echo",
                "extraContent": "echo",
            },
            before=before,
            after=after,
        )
        resolved = resolve_reply(raw, "Ekstre", self.catalog, NOW)

        self.assertTrue(resolved.text.startswith(before + "```json\n"))
        self.assertTrue(resolved.text.endswith("\n```" + after))
        payload = _payload_of(resolved.text)
        self.assertNotIn("extraContent", payload)
        self.assertEqual(payload["content"], "echo")
        self.assertIsNone(payload["parameters"][GENERATE_STATEMENT]["direction"])
        self.assertEqual(payload["dateRange"]["relativeDays"], 30)
        self.assertEqual(payload["dateRange"]["startDate"], "2026-09-19T00:00:00")

    def test_model_date_hint_is_overridden(self):
        raw = _fenced(
            {
                "selectedActions": [GENERATE_STATEMENT],
                "parameters": {GENERATE_STATEMENT: {"startDate": "2023-01-01T00:00:00"}},
                "dateRange": {"isRelative": True, "relativeDays": 365, "note": "model"},
            }
        )
        resolved = resolve_reply(raw, "son 10 gün", self.catalog, NOW)
        payload = _payload_of(resolved.text)
        self.assertEqual(payload["parameters"][GENERATE_STATEMENT]["startDate"], "2026-10-09T00:00:00")
        self.assertEqual(payload["dateRange"]["relativeDays"], 10)
        self.assertEqual(payload["dateRange"]["note"], "model")

    def test_unknown_codes_dropped(self):
        raw = _fenced(
            {
                "selectedActions": ["OPEN_ACCOUNT", "BLOCK_CARD"],
                "parameters": {"OPEN_ACCOUNT": {"x": 1}, "BLOCK_CARD": {"reason": "stolen"}},
            }
        )
        resolved = resolve_reply(raw, "Kartım çalındı", self.catalog, NOW)
        self.assertEqual(resolved.selected_actions, ["BLOCK_CARD"])
        self.assertIsNone(resolved.date_range)
        payload = _payload_of(resolved.text)
        self.assertEqual(payload["selectedActions"], ["BLOCK_CARD"])
        self.assertEqual(payload["parameters"], {"BLOCK_CARD": {"reason": "stolen"}})
        self.assertNotIn("dateRange", payload)

    def test_only_unknown_codes_selects_default(self):
        raw = _fenced({"selectedActions": ["OPEN_ACCOUNT"], "parameters": {}})
        resolved = resolve_reply(raw, "Hesap aç", self.catalog, NOW)
        self.assertFalse(resolved.used_fallback)
        self.assertEqual(resolved.selected_actions, [DEFAULT_ACTION_CODE])

    def test_dangling_comma_uses_fallback_list(self):
        raw = 'Kart bloke edilecek.\n```json\n{"selectedActions": ["BLOCK_CARD"],}\n```'
        resolved = resolve_reply(raw, "Kartımı kaybettim", self.catalog, NOW)
        self.assertTrue(resolved.used_fallback)
        self.assertEqual(resolved.selected_actions, ["BLOCK_CARD"])
        self.assertEqual(resolved.text, raw)

    def test_no_json_and_no_codes_uses_default(self):
        resolved = resolve_reply("Size nasıl yardımcı olabilirim?", "Merhaba", self.catalog, NOW)
        self.assertTrue(resolved.used_fallback)
        self.assertEqual(resolved.selected_actions, [DEFAULT_ACTION_CODE])
        self.assertEqual(resolved.actions[0].code, DEFAULT_ACTION_CODE)

    def test_empty_reply(self):
        resolved = resolve_reply(None, "Merhaba", self.catalog, NOW)
        self.assertEqual(resolved.text, "")
        self.assertEqual(resolved.selected_actions, [DEFAULT_ACTION_CODE])

    def test_selected_actions_wrong_type_falls_back(self):
        raw = _fenced({"selectedActions": {"code": "BLOCK_CARD"}})
        resolved = resolve_reply(raw, "Kart", self.catalog, NOW)
        self.assertTrue(resolved.used_fallback)

    def test_fallback_statement_gets_dates_and_flag(self):
        raw = "Plan: GENERATE_STATEMENT then SEND_EMAIL {broken"
        resolved = resolve_reply(raw, "son 2 ay", self.catalog, NOW)
        self.assertTrue(resolved.used_fallback)
        self.assertEqual(resolved.selected_actions, [SEND_EMAIL, GENERATE_STATEMENT])
        statement = resolved.actions[1].parameters
        self.assertIs(statement["emailFlag"], True)
        self.assertEqual(statement["startDate"], "2026-08-20T00:00:00")

    def test_uppercase_turkish_period_resolves(self):
        raw = _fenced({"selectedActions": [GENERATE_STATEMENT], "parameters": {GENERATE_STATEMENT: {}}})
        resolved = resolve_reply(raw, "SON 2 YİL ekstre", self.catalog, NOW)
        self.assertFalse(resolved.used_fallback)
        self.assertEqual(resolved.date_range.relative_days, 730)
        self.assertEqual(resolved.actions[0].parameters["startDate"], "2024-10-19T00:00:00")

    def test_deeply_nested_reply_uses_default(self):
        raw = 'x {"a":' + "[" * 100000 + "]" * 100000 + "}"
        resolved = resolve_reply(raw, "Merhaba", self.catalog, NOW)
        self.assertTrue(resolved.used_fallback)
        self.assertEqual(resolved.selected_actions, [DEFAULT_ACTION_CODE])

    def test_payload_after_braced_prose_is_validated(self):
        prefix = "Not: {müşteri} için: "
        raw = prefix + json.dumps(
            {"selectedActions": ["BLOCK_CARD"], "parameters": {"BLOCK_CARD": {"reason": "both"}}}
        ) + " tamam."
        resolved = resolve_reply(raw, "Kartım çalındı", self.catalog, NOW)
        self.assertFalse(resolved.used_fallback)
        self.assertEqual(resolved.selected_actions, ["BLOCK_CARD"])
        self.assertIsNone(resolved.actions[0].parameters["reason"])
        self.assertTrue(resolved.text.startswith(prefix + "{"))
        self.assertTrue(resolved.text.endswith("} tamam."))

    def test_nested_object_of_broken_payload_is_not_used(self):
        raw = '{"selectedActions": ["BLOCK_CARD"], "parameters": {"BLOCK_CARD": {"reason": "lost"}},}'
        resolved = resolve_reply(raw, "Kartımı kaybettim", self.catalog, NOW)
        self.assertTrue(resolved.used_fallback)
        self.assertEqual(resolved.selected_actions, ["BLOCK_CARD"])

    def test_mock_reply_resolves(self):
        resolved = resolve_reply(MOCK_REPLY, "Son 3 ayın ekstresini mail at", self.catalog, NOW)
        self.assertFalse(resolved.used_fallback)
        self.assertEqual(resolved.selected_actions, [GENERATE_STATEMENT, SEND_EMAIL])
        self.assertIs(resolved.actions[0].parameters["emailFlag"], True)
        self.assertTrue(resolved.text.startswith("Müşteri talebi incelendi."))
        self.assertTrue(resolved.text.endswith("İşlem tamamlandığında müşteri bilgilendirilecektir."))
        payload = _payload_of(resolved.text)
        self.assertEqual(payload["dateRange"]["relativeDays"], 90)


if __name__ == "__main__":
    unittest.main()
