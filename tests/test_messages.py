from spendwatch.services.notifications import MessageRenderer
from spendwatch.services.spend import take_snapshot


def test_threshold_message_lists_all_figures():
    message = MessageRenderer().render("Dining", "Alice", 90, take_snapshot(47500, 50000))

    assert message.subject == "Budget Alert: Dining - 90% Used"
    for text in (message.text, message.html, message.sms):
        assert "Dining" in text
        assert "90%" in text
        assert "$500.00" in text
        assert "$475.00" in text
        assert "95.00%" in text
        assert "$25.00" in text
    assert "exceeded" not in message.text.lower()
    assert "Hello Alice" in message.text


def test_exceeded_message_shows_negative_remaining_and_raw_percentage():
    message = MessageRenderer().render("Dining", "Alice", 100, take_snapshot(62000, 50000))

    assert message.subject == "Budget Exceeded: Dining"
    assert "124.00%" in message.text
    assert "-$120.00" in message.text
    assert "You have exceeded your budget limit!" in message.text
    assert "exceeded!" in message.sms
    assert "\n" not in message.sms


def test_lower_thresholds_are_never_marked_exceeded():
    message = MessageRenderer().render("Dining", "Alice", 70, take_snapshot(62000, 50000))
    assert message.subject == "Budget Alert: Dining - 70% Used"
    assert "exceeded" not in message.sms


def test_html_body_escapes_budget_name():
    message = MessageRenderer(currency_symbol="€").render(
        "<b>Fun</b>", "", 70, take_snapshot(7000, 10000)
    )
    assert "&lt;b&gt;Fun&lt;/b&gt;" in message.html
    assert "€100.00" in message.html
    assert "Hello there" in message.text
