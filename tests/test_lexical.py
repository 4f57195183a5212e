from __future__ import annotations

from bizdoc.services.extraction.lexical import (
    build_key_entities,
    detect_language,
    extract_dates,
    extract_entities,
    guess_doc_type,
    measure_tone,
    split_sentences,
)


def test_detect_language_arabic_codepoint() -> None:
    """Any Arabic-script character makes the document Arabic."""
    assert detect_language("Invoice total 500 درهم") == "ara"
    assert detect_language("Invoice total 500 AED") == "eng"


def test_guess_doc_type_first_match_wins() -> None:
    assert guess_doc_type("Tax Invoice No. 123, see the contract terms") == "invoice"
    assert guess_doc_type("Purchase Order 991 for cables") == "purchase_order"
    assert guess_doc_type("Consolidated income statement for FY2024") == "financials"
    assert guess_doc_type("This Agreement is made between the parties") == "contract"
    assert guess_doc_type("Quarterly update for the board") == "document"


def test_split_sentences_on_terminal_punctuation() -> None:
    text = "Revenue rose. Costs fell! Margin? Yes."
    assert split_sentences(text) == ["Revenue rose.", "Costs fell!", "Margin?", "Yes."]


def test_split_sentences_requires_uppercase_start() -> None:
    """Abbreviations followed by lowercase text do not end a sentence."""
    assert split_sentences("Paid approx. three invoices. Next step is review.") == [
        "Paid approx. three invoices.",
        "Next step is review.",
    ]


def test_split_sentences_falls_back_to_lines() -> None:
    text = "e.g. first item\nsecond item\nthird item"
    assert split_sentences(text) == ["e.g. first item", "second item", "third item"]


def test_extract_entities_by_role() -> None:
    text = "Client: Acme Corp. Supplier: Gulf Steel Trading. Bank: Emirates NBD."
    roles = extract_entities(text)

    assert roles.client == ("Acme Corp",)
    assert roles.supplier == ("Gulf Steel Trading",)
    assert roles.bank == ("Emirates NBD",)


def test_extract_entities_skips_stop_words() -> None:
    """Acronyms such as DSO or VAT are never names."""
    roles = extract_entities("DSO rose while VAT stayed flat. KPI review by ALPHA HOLDINGS.")

    assert "DSO" not in roles.other
    assert "VAT" not in roles.other
    assert "KPI" not in roles.other
    assert "ALPHA HOLDINGS" in roles.other


def test_extract_entities_dedupes_and_caps() -> None:
    text = " ".join(f"Client: Buyer{i} Group." for i in range(10)) + " Client: Buyer0 Group."
    roles = extract_entities(text)

    assert len(roles.client) == 6
    assert roles.client[0] == "Buyer0 Group"
    assert len(set(name.lower() for name in roles.client)) == 6


def test_build_key_entities_parties_order() -> None:
    roles = extract_entities("Client: Acme Corp. Supplier: Beta Supplies. Bank: First Bank.")
    entities = build_key_entities(roles, ["AED", "USD", "AED"])

    assert entities.parties == ("Acme Corp", "Beta Supplies")
    assert entities.currencies == ("AED", "USD")


def test_extract_dates_three_shapes() -> None:
    text = "Issued 2024-01-05 and due 05/02/2024, covering March 2025. Again 2024-01-05."
    assert extract_dates(text) == ("2024-01-05", "05/02/2024", "March 2025")


def test_measure_tone_label() -> None:
    positive = measure_tone("Strong growth and record results.")
    negative = measure_tone("Losses widened after a penalty and a late payment dispute.")
    mixed = measure_tone("Revenue grew but payment is overdue.")

    assert positive.label == "positive"
    assert negative.label == "negative"
    assert mixed.label == "mixed"
    assert mixed.score == 0
