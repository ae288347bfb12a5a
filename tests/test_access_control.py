from dondesalimos.services.access_control import Capability, Role, has_capability, parse_role


def test_parse_role_from_header_values():
    assert parse_role("16") == Role.USER
    assert parse_role(3) == Role.VENUE_OWNER
    assert parse_role("2") == Role.ADMIN
    assert parse_role("99") is None
    assert parse_role("admin") is None
    assert parse_role(None) is None


def test_every_role_can_reserve():
    for role in Role:
        assert has_capability(role, Capability.CREATE_RESERVATION)


def test_only_owners_and_admins_manage_venues():
    assert not has_capability(Role.USER, Capability.MANAGE_OWN_VENUES)
    assert has_capability(Role.VENUE_OWNER, Capability.MANAGE_OWN_VENUES)
    assert has_capability("2", Capability.VIEW_RECEIVED_RESERVATIONS)


def test_administer_is_admin_only():
    assert has_capability(Role.ADMIN, Capability.ADMINISTER)
    assert not has_capability(Role.VENUE_OWNER, Capability.ADMINISTER)
    assert not has_capability(None, Capability.ADMINISTER)
