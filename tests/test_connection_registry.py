"""
Tests for connection_registry.py — indexed connections and confirmation flags.
"""

from xshare.connection_registry import ConnectionRegistry
from xshare.models import ConnectionStatus


class TestAdd:
    def test_new_connection_starts_unconfirmed(self, make_peer):
        registry = ConnectionRegistry()
        sender, receiver = make_peer(10, "a.txt", 100), make_peer(20)

        con_id = registry.add(sender, receiver)
        con = registry.get(con_id)

        assert con.sender is sender
        assert con.receiver is receiver
        assert not con.sender_confirmed
        assert not con.receiver_confirmed
        assert con.status is ConnectionStatus.INIT

    def test_both_participants_are_indexed(self, make_peer):
        registry = ConnectionRegistry()
        con_id = registry.add(make_peer(10, "a.txt", 100), make_peer(20))

        assert registry.connection_id_for(10) == con_id
        assert registry.connection_id_for(20) == con_id

    def test_ids_increase(self, make_peer):
        registry = ConnectionRegistry()
        first = registry.add(make_peer(1, "a", 1), make_peer(2))
        second = registry.add(make_peer(3, "b", 1), make_peer(4))

        assert second > first

    def test_second_pairing_supersedes_the_first(self, make_peer):
        registry = ConnectionRegistry()
        old_id = registry.add(make_peer(10, "a.txt", 100), make_peer(20))
        new_id = registry.add(make_peer(30, "b.txt", 5), make_peer(20))

        assert registry.get(old_id) is None
        assert registry.connection_id_for(10) is None
        assert registry.connection_id_for(20) == new_id
        assert registry.connection_id_for(30) == new_id
        assert len(registry) == 1

    def test_superseding_tells_the_partner_left_behind(self, make_peer):
        registry = ConnectionRegistry()
        sender, old_receiver = make_peer(10, "a.txt", 100), make_peer(20)
        registry.add(sender, old_receiver)
        registry.add(sender, make_peer(30))

        assert old_receiver.channel.sent == [("betrayedSending", {"partnerID": 10})]
        assert sender.channel.sent == []

    def test_superseded_sender_side_gets_betrayed_receiving(self, make_peer):
        registry = ConnectionRegistry()
        old_sender, receiver = make_peer(10, "a.txt", 100), make_peer(20)
        registry.add(old_sender, receiver)
        registry.add(make_peer(30, "b.txt", 5), make_peer(20))

        assert old_sender.channel.sent == [("betrayedReceiving", {"partnerID": 20})]

    def test_same_pair_again_is_silent(self, make_peer):
        registry = ConnectionRegistry()
        sender, receiver = make_peer(10, "a.txt", 100), make_peer(20)
        registry.add(sender, receiver)
        registry.add(make_peer(10, "a.txt", 100), make_peer(20))

        assert sender.channel.sent == []
        assert receiver.channel.sent == []
        assert len(registry) == 1

    def test_peer_may_switch_roles(self, make_peer):
        registry = ConnectionRegistry()
        registry.add(make_peer(10, "a.txt", 100), make_peer(20))
        con_id = registry.add(make_peer(20, "b.txt", 1), make_peer(10))

        con = registry.connection_for(10)
        assert con.id == con_id
        assert con.sender.id == 20


class TestConfirm:
    def test_one_side_is_not_enough(self, make_peer):
        registry = ConnectionRegistry()
        con_id = registry.add(make_peer(10, "a.txt", 100), make_peer(20))

        assert registry.confirm(con_id, 10) is False
        assert registry.get(con_id).sender_confirmed

    def test_both_sides_in_either_order(self, make_peer):
        for order in ((10, 20), (20, 10)):
            registry = ConnectionRegistry()
            con_id = registry.add(make_peer(10, "a.txt", 100), make_peer(20))

            assert registry.confirm(con_id, order[0]) is False
            assert registry.confirm(con_id, order[1]) is True

    def test_missing_connection_is_a_no_op(self):
        assert ConnectionRegistry().confirm(99, 10) is False

    def test_stranger_cannot_confirm(self, make_peer):
        registry = ConnectionRegistry()
        con_id = registry.add(make_peer(10, "a.txt", 100), make_peer(20))

        assert registry.confirm(con_id, 30) is False
        con = registry.get(con_id)
        assert not con.sender_confirmed and not con.receiver_confirmed


class TestClear:
    def test_clear_removes_connection_and_indices(self, make_peer):
        registry = ConnectionRegistry()
        con_id = registry.add(make_peer(10, "a.txt", 100), make_peer(20))

        registry.clear(con_id)

        assert registry.get(con_id) is None
        assert registry.connection_for(10) is None
        assert registry.connection_for(20) is None

    def test_abandon_notifies_the_other_side_only(self, make_peer):
        registry = ConnectionRegistry()
        sender, receiver = make_peer(10, "a.txt", 100), make_peer(20)
        con_id = registry.add(sender, receiver)
        notified = []

        registry.clear(con_id, 20, notified.append)

        assert notified == [sender]

    def test_abandon_by_sender_notifies_receiver(self, make_peer):
        registry = ConnectionRegistry()
        sender, receiver = make_peer(10, "a.txt", 100), make_peer(20)
        con_id = registry.add(sender, receiver)
        notified = []

        registry.clear(con_id, 10, notified.append)

        assert notified == [receiver]

    def test_clearing_twice_is_silent(self, make_peer):
        registry = ConnectionRegistry()
        con_id = registry.add(make_peer(10, "a.txt", 100), make_peer(20))
        notified = []

        registry.clear(con_id, 10, notified.append)
        registry.clear(con_id, 10, notified.append)

        assert len(notified) == 1

    def test_describe_lists_live_connections(self, make_peer):
        registry = ConnectionRegistry()
        con_id = registry.add(make_peer(10, "a.txt", 100), make_peer(20))

        assert registry.describe() == [
            {"connectionID": con_id, "senderID": 10, "receiverID": 20, "status": "INIT"}
        ]
