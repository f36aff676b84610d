import pytest

from warden.datatypes.discord_datatypes import (
    ChannelID,
    GuildID,
    MessageID,
    RoleID,
    UserID,
)


class DummyObj:
    def __init__(self, id_val=None):
        self.id = id_val


def test_userid_from_int_and_str_and_equality_and_hash():
    u1 = UserID(12345)
    assert int(u1) == 12345
    assert str(u1) == "12345"
    assert u1.to_int() == 12345

    u2 = UserID(" 12345 ")
    assert u1 == u2

    u3 = UserID.from_int(67890)
    assert isinstance(u3, UserID)

    u4 = UserID.from_user(DummyObj(id_val=111))  # type: ignore
    assert u4 == 111

    s = {u1, u2, u3, u4}
    assert len(s) == 3
    assert 12345 in s


def test_wrappers_of_different_kinds_are_never_equal():
    assert GuildID(1) != ChannelID(1)
    assert RoleID(1) != UserID(1)


def test_copy_constructor_keeps_value():
    assert GuildID(GuildID(5)) == GuildID(5)


@pytest.mark.parametrize("bad", [[], 1.5, True, "abc"])
def test_invalid_values(bad):
    with pytest.raises(ValueError):
        UserID(bad)  # type: ignore


@pytest.mark.parametrize(
    "cls, helper, val_int",
    [
        (GuildID, "from_guild", 222),
        (ChannelID, "from_channel", 333),
        (MessageID, "from_message", 444),
        (RoleID, "from_role", 555),
    ],
)
def test_id_wrappers_common_behaviour(cls, helper, val_int):
    inst = cls(val_int)
    assert int(inst) == val_int
    assert str(inst) == str(val_int)
    assert repr(inst) == f"{cls.__name__}('{val_int}')"
    assert inst == cls(str(val_int))

    from_obj = getattr(cls, helper)(DummyObj(id_val=val_int))
    assert from_obj == inst
