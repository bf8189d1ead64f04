import pytest

from courier.errors import InvalidRequest, NotConnected, TransportError
from courier.modules.dispatch import (
    ADDRESS_SUFFIX,
    DirectDelivery,
    DispatchEngine,
    GroupDelivery,
    MediaKind,
    build_delivery_request,
    normalize_address,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("0044123456789", "44123456789"),
        ("+44 123-456-789", "44123456789"),
        ("(555) 010-9999", "5550109999"),
        ("", ""),
        ("not a number", ""),
        ("00", ""),
        ("+0049 30 1234", "49301234"),
    ],
)
def test_normalize_address(raw, expected):
    assert normalize_address(raw) == expected + ADDRESS_SUFFIX


def test_normalize_address_handles_none():
    assert normalize_address(None) == ADDRESS_SUFFIX


def test_build_direct_request():
    request = build_delivery_request(
        mode="numbers", caption="hello", recipients=["+1 555", "0044 20"],
    )

    assert isinstance(request, DirectDelivery)
    assert request.recipients == ("+1 555", "0044 20")
    assert request.content.caption == "hello"
    assert request.content.media is None


def test_direct_is_a_synonym_for_numbers():
    request = build_delivery_request(mode="direct", caption="hello", recipients=["1"])

    assert isinstance(request, DirectDelivery)
    assert request.recipients == ("1",)


def test_build_group_request_with_video():
    request = build_delivery_request(
        mode="group", caption="hi", group_id="g1",
        media_url="http://x/y.mp4", media_type="video",
    )

    assert isinstance(request, GroupDelivery)
    assert request.group_id == "g1"
    assert request.content.media.kind == MediaKind.VIDEO


def test_unknown_media_type_defaults_to_image():
    request = build_delivery_request(
        mode="group", caption="hi", group_id="g1", media_url="http://x/y", media_type="gif",
    )

    assert request.content.media.kind == MediaKind.IMAGE


@pytest.mark.parametrize(
    "fields",
    [
        {"mode": None, "caption": "hi", "recipients": ["1"]},
        {"mode": "numbers", "caption": "", "recipients": ["1"]},
        {"mode": "numbers", "caption": "hi", "recipients": []},
        {"mode": "numbers", "caption": "hi", "recipients": None},
        {"mode": "group", "caption": "hi", "group_id": None},
        {"mode": "broadcast", "caption": "hi", "recipients": ["1"]},
    ],
)
def test_invalid_requests_are_rejected(fields):
    with pytest.raises(InvalidRequest):
        build_delivery_request(**fields)


@pytest.mark.asyncio
async def test_publish_requires_connection(session_manager):
    engine = DispatchEngine(session_manager)
    request = build_delivery_request(mode="numbers", caption="hi", recipients=["1"])

    with pytest.raises(NotConnected):
        await engine.publish(request)


@pytest.mark.asyncio
async def test_publish_direct_text_in_order(connected_manager, transport):
    """Recipients are normalized and sent to in input order."""
    engine = DispatchEngine(connected_manager)
    request = build_delivery_request(
        mode="numbers", caption="hello", recipients=["+44 1", "0049 2", "3"],
    )

    outcome = await engine.publish(request)

    handle = transport.latest
    assert [c.args for c in handle.send_text.await_args_list] == [
        ("441" + ADDRESS_SUFFIX, "hello"),
        ("492" + ADDRESS_SUFFIX, "hello"),
        ("3" + ADDRESS_SUFFIX, "hello"),
    ]
    handle.send_media.assert_not_awaited()
    assert outcome.success
    assert [r.recipient for r in outcome.results] == ["+44 1", "0049 2", "3"]


@pytest.mark.asyncio
async def test_publish_isolates_partial_failure(connected_manager, transport):
    """The second recipient failing does not stop the third."""
    handle = transport.latest
    handle.send_text.side_effect = [None, TransportError("not on network"), None]
    engine = DispatchEngine(connected_manager)
    request = build_delivery_request(mode="numbers", caption="hi", recipients=["1", "2", "3"])

    outcome = await engine.publish(request)

    assert handle.send_text.await_count == 3
    assert [r.success for r in outcome.results] == [True, False, True]
    assert outcome.results[1].error == "not on network"
    assert outcome.results[0].error is None
    assert outcome.success is False


@pytest.mark.asyncio
async def test_publish_group_with_media(connected_manager, transport):
    """A group request sends exactly one media message and yields one result."""
    engine = DispatchEngine(connected_manager)
    request = build_delivery_request(
        mode="group", caption="hi", group_id="g1", media_url="http://x/y.png",
    )

    outcome = await engine.publish(request)

    handle = transport.latest
    handle.send_media.assert_awaited_once_with("g1", "http://x/y.png", "image", "hi")
    handle.send_text.assert_not_awaited()
    assert len(outcome.results) == 1
    assert outcome.results[0].recipient == "group"
    assert outcome.success


@pytest.mark.asyncio
async def test_publish_group_failure(connected_manager, transport):
    transport.latest.send_text.side_effect = RuntimeError("group not found")
    engine = DispatchEngine(connected_manager)

    outcome = await engine.publish(GroupDelivery(
        group_id="missing@g.us",
        content=build_delivery_request(mode="group", caption="hi", group_id="x").content,
    ))

    assert outcome.success is False
    assert outcome.results[0].error == "group not found"
