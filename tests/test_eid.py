from booking_inbox.parsing.eid import build_eid


def test_provider_id_key_ignores_timestamp_and_body():
    a = build_eid("sms", sender="+1555", timestamp=1, body="hi", thread_id="t1", provider_message_id="m1")
    b = build_eid("sms", sender="+1555", timestamp=2, body="hi  ", thread_id="t1", provider_message_id="m1")
    assert a == b


def test_provider_id_distinguishes_messages():
    a = build_eid("sms", thread_id="t1", provider_message_id="m1")
    b = build_eid("sms", thread_id="t1", provider_message_id="m2")
    assert a != b


def test_fallback_key_is_stable():
    a = build_eid("sms", sender="+1555", timestamp=1730000000000, body="Board Nov 7-9?")
    b = build_eid("sms", sender="+1555", timestamp=1730000000000, body="Board Nov 7-9?")
    assert a == b


def test_fallback_key_differs_on_body_or_timestamp():
    base = build_eid("sms", sender="+1555", timestamp=1, body="Board Nov 7-9?")
    assert base != build_eid("sms", sender="+1555", timestamp=2, body="Board Nov 7-9?")
    assert base != build_eid("sms", sender="+1555", timestamp=1, body="Board Nov 8-9?")


def test_fallback_uses_body_prefix_only():
    prefix = "x" * 120
    assert build_eid("sms", "+1555", 1, prefix + "A") == build_eid("sms", "+1555", 1, prefix + "B")


def test_platform_is_part_of_the_key():
    assert build_eid("sms", "+1555", 1, "hi") != build_eid("rover", "+1555", 1, "hi")
    assert build_eid(None, "+1555", 1, "hi") == build_eid("sms", "+1555", 1, "hi")


def test_hex_digest():
    eid = build_eid("sms", "+1555", 1, "hi")
    assert len(eid) == 64
    int(eid, 16)
