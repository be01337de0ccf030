"""End-to-end fluent query example against a canned interpreter."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from documentlab import Direction, Document, Subset, TextType


class InvoiceInterpreter:
    """Answers scripts from a fixed table, standing in for a real page engine."""

    def __init__(self, answers: Dict[str, Any]):
        self._answers = answers

    def interpret(self, page: Any, script: str) -> str:
        for fragment, answer in self._answers.items():
            if fragment in script:
                return json.dumps(answer)
        return ""


def main() -> None:
    logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s %(message)s")

    interpreter = InvoiceInterpreter(
        {
            "Text(Invoice number||Invoice no)": {"GeneratedScriptQuery": "INV-1042"},
            "Text(Total) Down": {"GeneratedScriptQuery": "1 250.00"},
            "Any [Email]": {"GeneratedScriptQuery": ["billing@acme.test", "ap@acme.test"]},
            "'due':": {"GeneratedScriptQuery": {"issued": "2024-01-02", "due": "2024-02-01"}},
        }
    )

    with Document.open("invoice-page-1", interpreter) as doc:
        number = doc.query().find_value_for_label("Invoice number", "Invoice no", text_type=TextType.INVOICE_NUMBER)
        print(f"invoice number: {number}")

        total = doc.query().get_value_at_label(Direction.DOWN, "Total", text_type=TextType.AMOUNT)
        print(f"total: {total}")

        emails = doc.query().subset(Subset("Top")).get_any(TextType.EMAIL)
        print(f"emails: {', '.join(emails)}")

        dates = doc.query().capture_multiple(
            lambda q: q.match(TextType.TEXT, "Issued").right().capture_as(TextType.DATE, "issued")
            .down().capture_as(TextType.DATE, "due")
        )
        print(f"dates: {dates}")

        missing = doc.query().find_value_for_label("Purchase order", text_type=TextType.NUMBER)
        print(f"purchase order: {missing}")


if __name__ == "__main__":
    main()
