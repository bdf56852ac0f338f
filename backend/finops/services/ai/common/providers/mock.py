"""Mock provider: deterministic finance-action reply for tests and fallback."""

from __future__ import annotations

import time

from .base import BaseProvider, ProviderResult

MOCK_REPLY = """Müşteri talebi incelendi. Hesap ekstresi hazırlanıp e-posta ile gönderilecek.

```json
{
  "selectedActions": ["GENERATE_STATEMENT", "SEND_EMAIL"],
  "parameters": {
    "GENERATE_STATEMENT": {
      "customerId": null,
      "startDate": null,
      "endDate": null,
      "direction": null,
      "order": "desc",
      "currency": "TRY",
      "emailFlag": false
    },
    "SEND_EMAIL": {"customerId": null, "to": null, "subject": "Hesap ekstresi", "body": null}
  },
  "dateRange": {"isRelative": true, "relativeDays": 30}
}
```

İşlem tamamlandığında müşteri bilgilendirilecektir."""


class MockProvider(BaseProvider):
    name = "mock"

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        model: str = "",
        temperature: float = 0.2,
        max_tokens: int = 2048,
        timeout_seconds: float = 8.0,
    ) -> ProviderResult:
        t0 = time.monotonic()
        text = MOCK_REPLY
        elapsed = (time.monotonic() - t0) * 1000
        prompt_words = len(prompt.split()) + len((system_prompt or "").split())
        return ProviderResult(
            raw_text=text,
            model=model or "mock-v1",
            provider=self.name,
            prompt_tokens=prompt_words,
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
