import pytest

from vmebus.virtualos import (
    AddressType,
    DevLibError,
    SimulatedVME,
    Status,
    VirtualOS,
)


@pytest.fixture
def bus():
    return SimulatedVME()


def test_address_type_limits_enforced(bus):
    mem = bus.add_device(AddressType.A16, AddressType.A16.limit - 0xF, 0x10)
    assert len(mem) == 0x10
    with pytest.raises(DevLibError) as info:
        bus.add_device(AddressType.A16, AddressType.A16.limit - 0xF, 0x11)
    assert info.value.status is AddressType.A16.fail_status
    assert AddressType.A16.fail_status is Status.BAD_A16
    with pytest.raises(DevLibError) as info:
        bus.add_device(AddressType.CSR, 0xFFFFFF, 2)
    assert info.value.status is AddressType.CSR.fail_status
    assert AddressType.CSR.fail_status is Status.BAD_A24
    assert AddressType.A24.fail_status is Status.BAD_A24
    assert AddressType.A32.limit == 0xFFFFFFFF
    assert AddressType.CSR.title == "VME CR/CSR"
    assert AddressType.A32.hex_digits == 8


def test_devlib_error_carries_status():
    err = DevLibError(Status.NO_DEVICE, "here")
    assert err.status is Status.NO_DEVICE
    assert "here" in str(err)
    assert Status.NO_DEVICE.value in str(err)


@pytest.mark.parametrize(
    "call",
    [
        lambda v: v.map_address(AddressType.A16, 0, 4),
        lambda v: v.read_probe(1, 0),
        lambda v: v.write_probe(1, 0, 0),
        lambda v: v.no_response_probe(AddressType.A16, 0, 4),
        lambda v: v.connect_interrupt(1, print, None),
        lambda v: v.disconnect_interrupt(1, print),
        lambda v: v.enable_interrupt_level(1),
        lambda v: v.disable_interrupt_level(1),
        lambda v: v.interrupt_in_use(1),
    ],
)
def test_base_virtualos_unsupported(call):
    with pytest.raises(DevLibError) as info:
        call(VirtualOS())
    assert info.value.status is Status.UNSUPPORTED


def test_init_marks_initialized(bus):
    assert bus.initialized is False
    bus.init()
    assert bus.initialized is True


def test_write_then_read_big_endian(bus):
    mem = bus.add_device(AddressType.A24, 0x210000, 0x100)
    local = bus.map_address(AddressType.A24, 0x210000, 0x100)
    bus.write_probe(4, local + 8, 0x12345678)
    assert bytes(mem[8:12]) == bytes([0x12, 0x34, 0x56, 0x78])
    assert bus.read_probe(4, local + 8) == 0x12345678
    assert bus.read_probe(2, local + 8) == 0x1234
    assert bus.read8(local + 11) == 0x78


def test_write8_read8_roundtrip(bus):
    mem = bus.add_device(AddressType.A16, 0x100, 16)
    local = bus.map_address(AddressType.A16, 0x100, 16)
    bus.write8(local + 3, 0xAB)
    assert mem[3] == 0xAB
    assert bus.read8(local + 3) == 0xAB


def test_address_spaces_are_separate(bus):
    bus.add_device(AddressType.A16, 0x100, 16)
    local = bus.map_address(AddressType.A24, 0x100, 16)
    with pytest.raises(DevLibError) as info:
        bus.read_probe(1, local)
    assert info.value.status is Status.NO_DEVICE


def test_read_past_device_end(bus):
    bus.add_device(AddressType.A24, 0x1000, 4)
    local = bus.map_address(AddressType.A24, 0x1000, 4)
    with pytest.raises(DevLibError) as info:
        bus.read_probe(4, local + 2)
    assert info.value.status is Status.NO_DEVICE


def test_bad_width(bus):
    bus.add_device(AddressType.A24, 0, 8)
    local = bus.map_address(AddressType.A24, 0, 8)
    with pytest.raises(DevLibError) as info:
        bus.read_probe(3, local)
    assert info.value.status is Status.BAD_ARGUMENT


def test_map_out_of_range(bus):
    with pytest.raises(DevLibError) as info:
        bus.map_address(AddressType.A16, 0xFFFF, 2)
    assert info.value.status is Status.ADDR_MAP_FAIL


def test_add_device_overlap_and_range(bus):
    bus.add_device(AddressType.A24, 0x1000, 0x100)
    with pytest.raises(DevLibError) as info:
        bus.add_device(AddressType.A24, 0x10FF, 0x10)
    assert info.value.status is Status.ADDRESS_OVERLAP
    with pytest.raises(DevLibError) as info:
        bus.add_device(AddressType.A16, 0xFFF0, 0x20)
    assert info.value.status is Status.BAD_A16
    with pytest.raises(DevLibError) as info:
        bus.add_device(AddressType.A16, 0, 0)
    assert info.value.status is Status.LOW_VALUE


def test_no_response_probe(bus):
    bus.add_device(AddressType.A24, 0x2000, 0x10)
    assert bus.no_response_probe(AddressType.A24, 0x3000, 0x10) is None
    with pytest.raises(DevLibError) as info:
        bus.no_response_probe(AddressType.A24, 0x1FF8, 0x10)
    assert info.value.status is Status.ADDRESS_OVERLAP


def test_interrupt_connect_trigger_disconnect(bus):
    seen = []

    def handler(param):
        seen.append(param)

    assert bus.interrupt_in_use(0x60) is False
    bus.connect_interrupt(0x60, handler, "card")
    assert bus.interrupt_in_use(0x60) is True
    assert bus.trigger(0x60) is True
    assert seen == ["card"]

    with pytest.raises(DevLibError) as info:
        bus.connect_interrupt(0x60, handler, "other")
    assert info.value.status is Status.VECTOR_IN_USE

    with pytest.raises(DevLibError) as info:
        bus.disconnect_interrupt(0x60, print)
    assert info.value.status is Status.VECTOR_NOT_IN_USE

    bus.disconnect_interrupt(0x60, handler)
    assert bus.interrupt_in_use(0x60) is False
    assert bus.trigger(0x60) is False
    assert seen == ["card"]


def test_bad_vector(bus):
    with pytest.raises(DevLibError) as info:
        bus.connect_interrupt(256, print, None)
    assert info.value.status is Status.BAD_VECTOR


def test_interrupt_levels(bus):
    bus.enable_interrupt_level(4)
    bus.enable_interrupt_level(7)
    assert bus.enabled_levels == {4, 7}
    bus.disable_interrupt_level(4)
    assert bus.enabled_levels == {7}
    with pytest.raises(DevLibError) as info:
        bus.enable_interrupt_level(0)
    assert info.value.status is Status.INT_EN_FAIL
    with pytest.raises(DevLibError) as info:
        bus.disable_interrupt_level(8)
    assert info.value.status is Status.INT_DIS_FAIL