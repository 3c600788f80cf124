import importlib

migration = importlib.import_module("apps.orders.migrations.0002_address_street_to_address1")


def test_street_moves_to_address1():
    migrated, changed = migration._migrate_address({"street": "1 Main St", "city": "Austin"})
    assert changed
    assert migrated == {"address1": "1 Main St", "city": "Austin"}


def test_existing_address1_wins_over_street():
    migrated, changed = migration._migrate_address({"street": "old", "address1": "new"})
    assert changed
    assert migrated == {"address1": "new"}


def test_current_addresses_are_left_alone():
    address = {"address1": "1 Main St"}
    assert migration._migrate_address(address) == (address, False)
    assert migration._migrate_address(None) == (None, False)
