"""Finance action catalog: immutable registry of action type definitions.

Parameter templates map each parameter name to either ``"?"`` (free-form,
optional) or a pipe-delimited closed set such as ``"in|out"`` (exactly one
of the alternatives, or null).
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

FREE_FORM = "?"
ENUM_SEPARATOR = "|"

SEND_EMAIL = "SEND_EMAIL"
GENERATE_STATEMENT = "GENERATE_STATEMENT"
LOG_CUSTOMER_INTERACTION = "LOG_CUSTOMER_INTERACTION"
DEFAULT_ACTION_CODE = LOG_CUSTOMER_INTERACTION

_TOKEN_SEPARATORS_RE = re.compile(r"[\s\-]+")


def is_enumerated(template_value: object) -> bool:
    return isinstance(template_value, str) and ENUM_SEPARATOR in template_value


def split_alternatives(template_value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in template_value.split(ENUM_SEPARATOR) if part.strip())


@dataclass(frozen=True)
class ActionTypeDefinition:
    code: str
    name: str
    description: str
    sample_prompt: str
    parameter_template: Mapping[str, str]
    sort_order: int = 0
    # Statement-class actions get their date range recomputed from the user's text.
    resolves_relative_dates: bool = False
    enumerations: Mapping[str, tuple[str, ...]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        template = MappingProxyType(dict(self.parameter_template))
        object.__setattr__(self, "parameter_template", template)
        object.__setattr__(
            self,
            "enumerations",
            MappingProxyType({k: split_alternatives(v) for k, v in template.items() if is_enumerated(v)}),
        )

    def template_dict(self) -> dict[str, str]:
        return dict(self.parameter_template)


class ActionCatalog(Mapping[str, ActionTypeDefinition]):
    """Read-only mapping from action code to its definition, in sort order."""

    def __init__(self, definitions: list[ActionTypeDefinition] | tuple[ActionTypeDefinition, ...]) -> None:
        ordered = sorted(definitions, key=lambda d: d.sort_order)
        by_code: dict[str, ActionTypeDefinition] = {}
        for definition in ordered:
            if definition.code in by_code:
                raise ValueError(f"Duplicate action code {definition.code!r}")
            by_code[definition.code] = definition
        self._by_code = MappingProxyType(by_code)

    def __getitem__(self, code: str) -> ActionTypeDefinition:
        return self._by_code[code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_code)

    def __len__(self) -> int:
        return len(self._by_code)

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(self._by_code)

    def definitions(self) -> tuple[ActionTypeDefinition, ...]:
        return tuple(self._by_code.values())

    def resolve(self, token: object) -> ActionTypeDefinition | None:
        """Look up a loosely written code (``"block card"``, ``'Block-Card'``)."""
        if not isinstance(token, str):
            return None
        normalized = _TOKEN_SEPARATORS_RE.sub("_", token.strip().strip("'\"`")).upper()
        if not normalized:
            return None
        return self._by_code.get(normalized)


_STATEMENT_TEMPLATE = {
    "customerId": FREE_FORM,
    "startDate": FREE_FORM,
    "endDate": FREE_FORM,
    "direction": "in|out",
    "minAmount": FREE_FORM,
    "maxAmount": FREE_FORM,
    "transactionType": "purchase|transfer|withdrawal|deposit|payment",
    "category": (
        "shopping|groceries|entertainment|transportation|utilities|healthcare"
        "|education|salary|rent|investment|personal"
    ),
    "descriptionContains": FREE_FORM,
    "limit": FREE_FORM,
    "order": "asc|desc",
    "currency": "TRY|USD|EUR|GBP",
    "emailFlag": FREE_FORM,
}

_DEFINITIONS: tuple[ActionTypeDefinition, ...] = (
    ActionTypeDefinition(
        code=SEND_EMAIL,
        name="E-POSTA GÖNDERİMİ",
        description="Mail gönderimlerini sağla",
        sample_prompt="Ahmet, Veli'ye tasklarının durumunu sor",
        parameter_template={
            "customerId": FREE_FORM,
            "to": FREE_FORM,
            "subject": FREE_FORM,
            "body": FREE_FORM,
        },
        sort_order=1,
    ),
    ActionTypeDefinition(
        code=GENERATE_STATEMENT,
        name="EKSTRE ÜRETİMİ",
        description="Hesap ekstresi, işlem dökümü, bakiye raporu oluştur ve müşteriye ilet.",
        sample_prompt="Hesap ekstresini gönder lütfen, Ahmet'ten Veli'ye ait hesap hareketlerini istiyorum.",
        parameter_template=_STATEMENT_TEMPLATE,
        sort_order=2,
        resolves_relative_dates=True,
    ),
    ActionTypeDefinition(
        code="SEND_PAYMENT_REMINDER",
        name="ÖDEME HATIRLATMASI",
        description="Geciken ödemeler için hatırlatma maili veya SMS gönder.",
        sample_prompt="Veli'nin kredi kartı borcunu hatırlat.",
        parameter_template={"recipientName": FREE_FORM, "dueDate": FREE_FORM, "amount": FREE_FORM, "channel": "email|sms"},
        sort_order=3,
    ),
    ActionTypeDefinition(
        code="CREATE_INVOICE",
        name="FATURA OLUŞTURMA",
        description="Belirli bir müşteri veya işlem için fatura oluştur ve maille ilet.",
        sample_prompt="Ahmet için son işlemlere ait fatura hazırla.",
        parameter_template={"recipientName": FREE_FORM, "invoiceId": FREE_FORM},
        sort_order=4,
    ),
    ActionTypeDefinition(
        code="PROCESS_PAYMENT",
        name="ÖDEME İŞLEMİ",
        description="Müşteriden ödeme al, ödeme durumu güncelle.",
        sample_prompt="Ahmet'in kredi kartı ödemesini işle.",
        parameter_template={
            "payerName": FREE_FORM,
            "amount": FREE_FORM,
            "paymentMethod": "credit_card|debit_card|bank_transfer|cash",
        },
        sort_order=5,
    ),
    ActionTypeDefinition(
        code="REQUEST_LOAN_INFO",
        name="KREDİ BİLGİSİ SORGULAMA",
        description="Müşteri için kredi başvuru durumu, kredi limiti bilgisi sorgula ve raporla.",
        sample_prompt="Veli'nin kredi başvurusu ne durumda?",
        parameter_template={"customerName": FREE_FORM},
        sort_order=6,
    ),
    ActionTypeDefinition(
        code="UPDATE_CONTACT_INFO",
        name="İLETİŞİM BİLGİSİ GÜNCELLEME",
        description="Müşterinin iletişim bilgilerini güncelle.",
        sample_prompt="Ahmet'in yeni e-posta adresini kaydet.",
        parameter_template={"customerName": FREE_FORM, "newEmail": FREE_FORM, "newPhone": FREE_FORM},
        sort_order=7,
    ),
    ActionTypeDefinition(
        code="GENERATE_FINANCIAL_REPORT",
        name="FİNANSAL RAPOR OLUŞTURMA",
        description="Şirket, müşteri veya portföy bazında finansal rapor hazırla (kâr/zarar, gelir tablosu vb.)",
        sample_prompt="Mart ayı finansal raporunu hazırla.",
        parameter_template={"companyId": FREE_FORM, "reportPeriod": FREE_FORM},
        sort_order=8,
    ),
    ActionTypeDefinition(
        code="ALERT_FRAUD_DETECTION",
        name="SAHTECİLİK TESPİTİ UYARISI",
        description="Şüpheli işlem tespiti ve güvenlik uyarısı gönder.",
        sample_prompt="Veli'nin hesabında olağan dışı hareket var mı kontrol et.",
        parameter_template={"accountId": FREE_FORM, "transactionId": FREE_FORM},
        sort_order=9,
    ),
    ActionTypeDefinition(
        code="SCHEDULE_MEETING",
        name="RANDEVU PLANLAMA",
        description="Finansal danışman ile müşteri arasında toplantı ayarla.",
        sample_prompt="Ahmet için finansal danışmanla randevu oluştur.",
        parameter_template={"customerName": FREE_FORM, "advisorName": FREE_FORM, "meetingDate": FREE_FORM},
        sort_order=10,
    ),
    ActionTypeDefinition(
        code="TRANSFER_FUNDS",
        name="PARA TRANSFERİ",
        description="Hesaplar arası para transferi yap.",
        sample_prompt="Veli'nin tasarruf hesabından cari hesabına 5000 TL aktar.",
        parameter_template={
            "fromAccountId": FREE_FORM,
            "toAccountId": FREE_FORM,
            "amount": FREE_FORM,
            "currency": "TRY|USD|EUR|GBP",
        },
        sort_order=11,
    ),
    ActionTypeDefinition(
        code="NOTIFY_POLICY_CHANGE",
        name="POLİTİKA DEĞİŞİKLİĞİ BİLDİRİMİ",
        description="Hesap veya kredi politikalarında değişiklik bildirimi gönder.",
        sample_prompt="Kredi faiz oranlarındaki değişikliği müşterilere bildir.",
        parameter_template={"policyId": FREE_FORM, "changeDescription": FREE_FORM},
        sort_order=12,
    ),
    ActionTypeDefinition(
        code="UPDATE_ACCOUNT_STATUS",
        name="HESAP DURUMU GÜNCELLEME",
        description="Hesap açma, kapama, askıya alma gibi durum güncellemeleri yap.",
        sample_prompt="Ahmet'in hesabını geçici olarak kapat.",
        parameter_template={"accountId": FREE_FORM, "newStatus": "active|suspended|closed"},
        sort_order=13,
    ),
    ActionTypeDefinition(
        code="UPLOAD_DOCUMENT",
        name="BELGE YÜKLEME",
        description="Müşteri tarafından gönderilen belgeleri sisteme yükle ve ilişkilendir.",
        sample_prompt="Veli'nin kimlik fotokopisini yükle.",
        parameter_template={
            "customerName": FREE_FORM,
            "documentType": "ID_CARD|PASSPORT|PROOF_OF_ADDRESS|INCOME_STATEMENT|OTHER",
            "documentUrl": FREE_FORM,
        },
        sort_order=14,
    ),
    ActionTypeDefinition(
        code="CALCULATE_INTEREST",
        name="FAİZ HESAPLAMA",
        description="Belirli bir dönemin faiz hesaplamasını yap.",
        sample_prompt="Ahmet'in mevduat faizi ne kadar?",
        parameter_template={"accountId": FREE_FORM, "periodStart": FREE_FORM, "periodEnd": FREE_FORM},
        sort_order=15,
    ),
    ActionTypeDefinition(
        code="GENERATE_TAX_REPORT",
        name="VERGİ RAPORU OLUŞTURMA",
        description="Vergi raporu veya formu hazırla ve gönder.",
        sample_prompt="Veli'nin gelir vergisi beyanı için rapor hazırla.",
        parameter_template={"customerName": FREE_FORM, "taxYear": FREE_FORM},
        sort_order=16,
    ),
    ActionTypeDefinition(
        code="BLOCK_CARD",
        name="KART ENGELLEME",
        description="Kayıp veya çalıntı kart için kartı geçici olarak bloke et.",
        sample_prompt="Ahmet'in kredi kartını bloke et.",
        parameter_template={"cardId": FREE_FORM, "reason": "lost|stolen|fraud|other"},
        sort_order=17,
    ),
    ActionTypeDefinition(
        code="UNBLOCK_CARD",
        name="KART ENGEL KALDIRMA",
        description="Daha önce bloke edilen kartı tekrar aktif hale getir.",
        sample_prompt="Veli'nin kartını tekrar aç.",
        parameter_template={"cardId": FREE_FORM},
        sort_order=18,
    ),
    ActionTypeDefinition(
        code="GENERATE_BUDGET_PLAN",
        name="BÜTÇE PLANI OLUŞTURMA",
        description="Müşteri için aylık veya yıllık bütçe planı hazırla.",
        sample_prompt="Ahmet için 2025 bütçe planı oluştur.",
        parameter_template={"customerName": FREE_FORM, "budgetYear": FREE_FORM, "period": "monthly|yearly"},
        sort_order=19,
    ),
    ActionTypeDefinition(
        code="SEND_MARKETING_CAMPAIGN",
        name="PAZARLAMA KAMPANYASI GÖNDERİMİ",
        description="Yeni ürün, kampanya veya fırsat bilgisi içeren toplu mail/sms gönder.",
        sample_prompt="Tüm müşterilere yeni kredi kampanyasını bildir.",
        parameter_template={"campaignId": FREE_FORM, "targetGroup": "all_customers|premium_customers|new_customers"},
        sort_order=20,
    ),
    ActionTypeDefinition(
        code=LOG_CUSTOMER_INTERACTION,
        name="MÜŞTERİ ETKİLEŞİMİ KAYDETME",
        description="Müşteri ile yapılan görüşmeler veya işlemler kayıt altına al.",
        sample_prompt="Ahmet ile yapılan telefon görüşmesini kaydet.",
        parameter_template={
            "customerName": FREE_FORM,
            "interactionType": "phone_call|email|branch_visit|chat",
            "notes": FREE_FORM,
        },
        sort_order=21,
    ),
)


def build_default_catalog() -> ActionCatalog:
    return ActionCatalog(_DEFINITIONS)
