import logging
from dataclasses import dataclass
from typing import Optional

from .matching import RuleOrder, Suggestion, extract_receiver_name, match_beneficiary, match_rule, normalize
from .models import Beneficiary, ClassificationRule
from .text_extraction import fetch_and_extract

logger = logging.getLogger(__name__)


@dataclass
class ClassificationResult:
    suggestion: Optional[Suggestion]
    receiver_name: Optional[str]
    beneficiary_id: Optional[object]

    def to_payload(self) -> dict:
        return {
            "success": True,
            "sugestao": self.suggestion.to_payload() if self.suggestion else None,
            "recebedor_nome": self.receiver_name,
            "beneficiario_id": str(self.beneficiary_id) if self.beneficiary_id is not None else None,
        }


def classify_text(text: str, description: str, rules, beneficiaries) -> ClassificationResult:
    """Merge rule, receiver-line and beneficiary-name matches for one text.

    A beneficiary whose name appears in the text wins over both the
    receiver-line name and the rule's beneficiary.
    """
    corpus = normalize(text, description)

    suggestion = match_rule(corpus, rules)
    receiver_name = extract_receiver_name(text)

    beneficiary_id = None
    beneficiary = match_beneficiary(corpus, beneficiaries)
    if beneficiary is not None:
        beneficiary_id = beneficiary.id
        receiver_name = beneficiary.name or None

    if beneficiary_id is None and suggestion is not None:
        beneficiary_id = suggestion.beneficiary_id

    return ClassificationResult(
        suggestion=suggestion,
        receiver_name=receiver_name,
        beneficiary_id=beneficiary_id,
    )


def classify_comprovante(
    owner_id,
    source_url: str,
    description: str = "",
    *,
    fetcher=None,
    extractor=None,
    order: RuleOrder = RuleOrder.NEWEST_FIRST,
) -> ClassificationResult:
    text = fetch_and_extract(source_url, fetcher=fetcher, extractor=extractor)
    rules = list(ClassificationRule.objects.for_matching(owner_id, order))
    beneficiaries = list(Beneficiary.objects.filter(owner_id=owner_id).order_by("name"))

    result = classify_text(text, description or "", rules, beneficiaries)
    logger.info(
        "comprovante_classified owner=%s rules=%s beneficiaries=%s rule_hit=%s receiver=%s beneficiary=%s",
        owner_id,
        len(rules),
        len(beneficiaries),
        bool(result.suggestion),
        bool(result.receiver_name),
        result.beneficiary_id or "-",
    )
    return result
