import socket
from unittest import mock

import dns.message
import dns.rdatatype
import dns.rrset

from tubesync import flasher


def make_response(service, addresses):
    query = dns.message.from_wire(flasher.build_query(service))
    response = dns.message.make_response(query)
    name = f"{service}.local."
    response.answer.append(dns.rrset.from_text(name, 120, "IN", "PTR", f"tube1.{name}"))
    response.additional.append(dns.rrset.from_text("tube1.local.", 120, "IN", "A", *addresses))
    return response.to_wire()


class FakeSocket:
    def __init__(self, replies):
        self.replies = list(replies)
        self.sent = []

    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False

    def setsockopt(self, *args):
        pass

    def settimeout(self, value):
        pass

    def sendto(self, data, address):
        self.sent.append((bytes(data), address))

    def recvfrom(self, size):
        if self.replies:
            return self.replies.pop(0), ("192.0.2.1", flasher.MDNS_PORT)
        raise socket.timeout()


def test_build_query_asks_for_service_ptr():
    message = dns.message.from_wire(flasher.build_query("_arduino._tcp"))
    question = message.question[0]
    assert question.name.to_text() == "_arduino._tcp.local."
    assert question.rdtype == dns.rdatatype.PTR
    assert message.id == 0


def test_parse_response_returns_addresses():
    data = make_response("_arduino._tcp", ["192.0.2.10", "192.0.2.11"])
    assert flasher.parse_response(data, "_arduino._tcp") == ["192.0.2.10", "192.0.2.11"]


def test_parse_response_ignores_other_service():
    data = make_response("_http._tcp", ["192.0.2.10"])
    assert flasher.parse_response(data, "_arduino._tcp") == []


def test_parse_response_ignores_garbage_and_queries():
    assert flasher.parse_response(b"\x01\x02", "_arduino._tcp") == []
    assert flasher.parse_response(flasher.build_query(), "_arduino._tcp") == []


def test_flash_command_uses_espota():
    command = flasher.flash_command("192.0.2.10", "fw.bin")
    assert command == ["python3", "../espota.py", "-p", "8266", "-i", "192.0.2.10", "-f", "fw.bin"]


def test_discover_devices_collects_unique_addresses():
    replies = [
        make_response("_arduino._tcp", ["192.0.2.10"]),
        make_response("_arduino._tcp", ["192.0.2.10", "192.0.2.12"]),
    ]
    fake = FakeSocket(replies)
    with mock.patch("socket.socket", return_value=fake):
        found = flasher.discover_devices("_arduino._tcp", 0.5)
    assert found == ["192.0.2.10", "192.0.2.12"]
    assert fake.sent == [(flasher.build_query("_arduino._tcp"), (flasher.MDNS_GROUP, flasher.MDNS_PORT))]


def test_flash_runs_command_per_host():
    hosts = ["192.0.2.10", "192.0.2.11"]
    seen = []

    def discover(service, timeout):
        seen.append((service, timeout))
        return list(hosts)

    with mock.patch("subprocess.run") as run:
        result = flasher.flash("fw.bin", 1.5, discover)
    assert result == hosts
    assert seen == [(flasher.DEFAULT_SERVICE, 1.5)]
    assert [call.args[0] for call in run.call_args_list] == [
        flasher.flash_command(ip, "fw.bin") for ip in hosts
    ]


def test_flash_with_no_devices_runs_nothing():
    with mock.patch("subprocess.run") as run:
        result = flasher.flash("fw.bin", 1.0, lambda service, timeout: [])
    assert result == []
    assert run.call_count == 0