"""
Test MQTT Pub/Sub (Without Real Broker)
========================================

Tests the heat-map and action-event publish/subscribe flow without a real
MQTT broker, by serializing with the publishers and feeding the subscriber
handlers directly.

Usage:
    pytest test_mqtt_pubsub.py -v
    python test_mqtt_pubsub.py
"""

import json

from campo_match import ActionKind, GameAction
from campo_match.logging import create_logger
from campo_mqtt import (
    ActionEventPublisher,
    HeatMapPublisher,
    MessageSubscriber,
)
from campo_mqtt.schemas import (
    SCHEMA_VERSION,
    ActionEventMessage,
    ChangeType,
    HeatMapMessage,
    Timestamp,
)
from campo_zone import Zone, aggregate


def _sample_actions():
    return [
        GameAction(id="a1", kind=ActionKind.POSSESSION, team_id="fla", zone=Zone(2, 2), timestamp=0),
        GameAction(id="a2", kind=ActionKind.ACTION, team_id="fla", zone=Zone(0, 4),
                   timestamp=65, action_name="Chute", player_id="fla_9"),
        GameAction(id="a3", kind=ActionKind.ACTION, team_id="flu", zone=Zone(0, 4),
                   timestamp=70, action_name="Desarme", player_id="flu_7"),
        GameAction(id="a4", kind=ActionKind.ACTION, team_id="flu", zone=Zone(3, 1),
                   timestamp=90, action_name="Substituição", player_id="flu_7",
                   other_player_ids=("flu_17",)),
    ]


def _heat_map_message(match_time=90, selected_names=None):
    return HeatMapMessage(
        schema_version=SCHEMA_VERSION,
        timestamp=Timestamp.now(),
        match_id="fla_flu",
        match_time=match_time,
        team_a_id="fla",
        team_b_id="flu",
        grid=aggregate(_sample_actions(), "fla", "flu"),
        selected_names=selected_names,
    )


def test_message_serialization():
    """Messages survive format_message -> JSON -> from_dict."""
    print("\n" + "=" * 60)
    print("TEST: Message Serialization/Deserialization")
    print("=" * 60)

    logger = create_logger("test")

    # 1. Heat map
    heat_pub = HeatMapPublisher(
        broker_host="localhost",
        topic="campo/data/heat_map/fla_flu",
        logger=logger,
    )
    heat_msg = _heat_map_message(selected_names=["Chute", "Desarme"])
    print(f"✓ Created HeatMapMessage ({heat_msg.total_actions} actions)")

    serialized = heat_pub.format_message(heat_msg)
    json_str = json.dumps(serialized, ensure_ascii=False)
    print(f"✓ Serialized to JSON ({len(json_str)} bytes)")

    reconstructed = HeatMapMessage.from_dict(json.loads(json_str))
    assert reconstructed.grid == heat_msg.grid
    assert reconstructed.match_time == 90
    assert reconstructed.selected_names == ["Chute", "Desarme"]
    assert serialized['bands'][0][4] == "peak"
    assert serialized['grid']['cells'][0][4] == {'team_a': 1, 'team_b': 1, 'total': 2}
    print("✓ Verification passed: Original == Reconstructed")

    # 2. Action event
    print("\n--- Action Event Message ---")
    event_pub = ActionEventPublisher(
        broker_host="localhost",
        topic="campo/data/actions/fla_flu",
        logger=logger,
    )
    substitution = _sample_actions()[-1]
    event_msg = ActionEventMessage(
        schema_version=SCHEMA_VERSION,
        timestamp=Timestamp.now(),
        match_id="fla_flu",
        change_type=ChangeType.CREATED,
        action=substitution,
        ledger_size=4,
    )

    event_json = json.dumps(event_pub.format_message(event_msg), ensure_ascii=False)
    event_reconstructed = ActionEventMessage.from_dict(json.loads(event_json))

    assert event_reconstructed.action == substitution
    assert event_reconstructed.action.other_player_ids == ("flu_17",)
    assert event_reconstructed.change_type == ChangeType.CREATED
    print("✓ Verification passed: Action events work")

    print("\n" + "=" * 60)
    print("✅ ALL SERIALIZATION TESTS PASSED")
    print("=" * 60)


def test_subscriber_callbacks():
    """Subscriber decodes payloads and invokes callbacks (simulated)."""
    print("\n" + "=" * 60)
    print("TEST: Subscriber Callbacks")
    print("=" * 60)

    logger = create_logger("test")

    received_heat_maps = []
    received_events = []

    def on_heat_map(msg: HeatMapMessage):
        received_heat_maps.append(msg)
        print(f"  📥 Heat map callback: {msg.match_id} @ {msg.match_time}s, max {msg.grid.max_total}")

    def on_action_event(msg: ActionEventMessage):
        received_events.append(msg)
        print(f"  📥 Action event callback: {msg.change_type.value} {msg.action.display_label}")

    subscriber = MessageSubscriber(
        broker_host="localhost",
        heat_map_topic="campo/data/heat_map/fla_flu",
        action_event_topic="campo/data/actions/fla_flu",
        on_heat_map=on_heat_map,
        on_action_event=on_action_event,
        logger=logger,
    )
    print("✓ MessageSubscriber created with callbacks")

    subscriber._handle_heat_map_message(_heat_map_message(match_time=456).to_dict())

    removed = ActionEventMessage(
        schema_version=SCHEMA_VERSION,
        timestamp=Timestamp.now(),
        match_id="fla_flu",
        change_type=ChangeType.REMOVED,
        action=_sample_actions()[1],
        ledger_size=3,
    )
    subscriber._handle_action_event_message(removed.to_dict())

    # Malformed payloads are logged, not delivered
    subscriber._handle_heat_map_message({'match_id': "fla_flu"})

    assert len(received_heat_maps) == 1
    assert len(received_events) == 1
    assert received_heat_maps[0].match_time == 456
    assert received_events[0].action.display_label == "Chute"

    stats = subscriber.get_stats()
    assert stats['heat_maps_received'] == 1
    assert stats['action_events_received'] == 1
    print(f"\n✓ Subscriber stats: {stats}")

    print("\n" + "=" * 60)
    print("✅ ALL CALLBACK TESTS PASSED")
    print("=" * 60)


def test_publisher_drops_while_offline():
    """Publishing before connect() is counted as a drop, not raised."""
    print("\n" + "=" * 60)
    print("TEST: Offline Publisher")
    print("=" * 60)

    heat_pub = HeatMapPublisher(
        broker_host="localhost",
        topic="campo/data/heat_map/fla_flu",
        logger=create_logger("test"),
    )

    assert heat_pub.publish_heat_map(_heat_map_message()) is False
    stats = heat_pub.get_stats()
    assert stats['dropped'] == 1
    assert stats['published'] == 0
    print(f"✓ Publisher stats: {stats}")


def test_timestamp_validation():
    assert Timestamp.now().to_datetime().tzinfo is not None
    try:
        Timestamp("yesterday")
    except ValueError:
        print("✓ Invalid timestamp rejected")
    else:
        raise AssertionError("Timestamp accepted 'yesterday'")


def main():
    """Run all tests."""
    print("\n⚽ campo_mqtt - Pub/Sub Integration Tests")
    print("=" * 60)
    print("Testing without real MQTT broker (simulated)")
    print("=" * 60)

    try:
        test_message_serialization()
        test_subscriber_callbacks()
        test_publisher_drops_while_offline()
        test_timestamp_validation()

        print("\n" + "=" * 60)
        print("✅ ALL TESTS PASSED!")
        print("=" * 60)
        print("\n🎯 Next Steps:")
        print("   1. Start MQTT broker: mosquitto -v")
        print("   2. python run_match_session.py --config config/match_config.yaml")
        print("   3. campo-cli record Chute fla 1,4 --players fla_9")

    except AssertionError as e:
        print(f"\n❌ TEST FAILED: {e}")
        raise


if __name__ == "__main__":
    main()
