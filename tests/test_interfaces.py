"""
Tests for local interface enumeration.
"""

import socket
from types import SimpleNamespace

import psutil
import pytest

from adapters import interfaces

NETSTAT_OUTPUT = """Routing tables

Internet:
Destination        Gateway            Flags               Netif Expire
default            192.168.1.1        UGScg                 en0
default            link#17            UCSIg               utun3
127                127.0.0.1          UCS                   lo0
192.168.1          link#6             UCS                   en0      !
"""

PROC_NET_ROUTE = (
    "Iface\tDestination\tGateway \tFlags\tRefCnt\tUse\tMetric\tMask\t\tMTU\tWindow\tIRTT\n"
    "eth0\t00000000\t0101A8C0\t0003\t0\t0\t100\t00000000\t0\t0\t0\n"
    "eth0\t0001A8C0\t00000000\t0001\t0\t0\t100\t00FFFFFF\t0\t0\t0\n"
)

HARDWARE_PORTS = """
Hardware Port: Wi-Fi
Device: en0
Ethernet Address: aa:bb:cc:dd:ee:ff

Hardware Port: Thunderbolt Bridge
Device: bridge0
Ethernet Address: 36:00:00:00:00:00
"""


def test_parse_netstat_default_routes_skips_link_gateways():
    assert interfaces.parse_netstat_default_routes(NETSTAT_OUTPUT) == {"en0": "192.168.1.1"}


def test_parse_proc_net_route():
    assert interfaces.parse_proc_net_route(PROC_NET_ROUTE) == {"eth0": "192.168.1.1"}


def test_parse_hardware_ports():
    assert interfaces.parse_hardware_ports(HARDWARE_PORTS) == {"en0": "Wi-Fi", "bridge0": "Thunderbolt Bridge"}


@pytest.mark.parametrize(
    "name, kind",
    [("wlan0", "Wi-Fi"), ("eth0", "Ethernet"), ("utun2", "VPN"), ("wg0", "VPN"), ("xyz0", "")],
)
def test_kind_for_name(name, kind):
    assert interfaces.kind_for_name(name) == kind


def test_kind_prefers_hardware_ports():
    assert interfaces.kind_for_name("en0", {"en0": "Wi-Fi"}) == "Wi-Fi"


@pytest.mark.parametrize(
    "name, app",
    [
        ("vmnet8", "VMware Fusion"),
        ("utun4", "VPN"),
        ("tap0", "Virtual TAP"),
        ("awdl0", "AirDrop/AirPlay"),
        ("vboxnet0", "VirtualBox"),
        ("en0", ""),
    ],
)
def test_app_for_name(name, app):
    assert interfaces.app_for_name(name) == app


def test_bridge_app_without_hypervisors(monkeypatch, tmp_path):
    monkeypatch.setattr(interfaces, "_PARALLELS_APP", tmp_path / "missing-parallels")
    monkeypatch.setattr(interfaces, "_VMWARE_APP", tmp_path / "missing-vmware")
    assert interfaces.app_for_name("bridge100") == "Virtual Bridge"


def test_bridge_app_with_vmware_installed(monkeypatch, tmp_path):
    vmware = tmp_path / "VMware Fusion.app"
    vmware.mkdir()
    monkeypatch.setattr(interfaces, "_PARALLELS_APP", tmp_path / "missing-parallels")
    monkeypatch.setattr(interfaces, "_VMWARE_APP", vmware)
    assert interfaces.app_for_name("bridge100") == "VMware Fusion"


def _addr(family, address):
    return SimpleNamespace(family=family, address=address, netmask=None)


@pytest.fixture
def fake_host(monkeypatch):
    addrs = {
        "lo": [_addr(socket.AF_INET, "127.0.0.1")],
        "eth0": [
            _addr(socket.AF_INET, "192.168.1.20"),
            _addr(socket.AF_INET6, "fe80::1%eth0"),
            _addr(psutil.AF_LINK, "aa:bb:cc:dd:ee:ff"),
        ],
        "tun0": [_addr(socket.AF_INET, "10.8.0.2")],
        "eth1": [_addr(socket.AF_INET, "172.16.0.5")],
    }
    stats = {
        "lo": SimpleNamespace(isup=True, flags="up,loopback,running"),
        "eth0": SimpleNamespace(isup=True, flags="up,broadcast,running,multicast"),
        "tun0": SimpleNamespace(isup=True, flags="up,pointopoint,running"),
        "eth1": SimpleNamespace(isup=False, flags="broadcast,multicast"),
    }
    monkeypatch.setattr(interfaces.psutil, "net_if_addrs", lambda: addrs)
    monkeypatch.setattr(interfaces.psutil, "net_if_stats", lambda: stats)
    monkeypatch.setattr(interfaces, "read_default_gateways", lambda: {"eth0": "192.168.1.1"})
    monkeypatch.setattr(interfaces, "read_hardware_ports", lambda: {})


def test_list_interfaces_ipv4(fake_host):
    found = interfaces.list_interfaces()

    assert [(i.name, i.ip_address) for i in found] == [("eth0", "192.168.1.20"), ("tun0", "10.8.0.2")]
    eth0, tun0 = found
    assert eth0.kind == "Ethernet"
    assert eth0.mac_address == "aa:bb:cc:dd:ee:ff"
    assert eth0.gateway == "192.168.1.1"
    assert eth0.app == ""
    assert tun0.app == "VPN"
    assert tun0.gateway == ""


def test_list_interfaces_with_ipv6(fake_host):
    found = interfaces.list_interfaces(include_ipv6=True)
    assert ("eth0", "fe80::1") in [(i.name, i.ip_address) for i in found]
