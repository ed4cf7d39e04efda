"""Factories for wallet and group models."""

import factory
from faker import Faker
from solders.pubkey import Pubkey

from solwatch.data.models.wallet import Group, Wallet

fake = Faker()


def new_address() -> str:
    """A unique, valid Solana public key."""
    return str(Pubkey.new_unique())


class WalletFactory(factory.Factory):
    """Factory for Wallet model."""

    class Meta:
        model = Wallet

    id = factory.LazyFunction(lambda: fake.uuid4())
    address = factory.LazyFunction(new_address)
    display_name = factory.LazyFunction(lambda: fake.user_name())
    group_id = None
    is_active = True
    created_at = factory.LazyFunction(lambda: fake.date_time_this_month(tzinfo=None))


class GroupFactory(factory.Factory):
    """Factory for Group model."""

    class Meta:
        model = Group

    id = factory.LazyFunction(lambda: fake.uuid4())
    name = factory.LazyFunction(lambda: fake.word())
    wallet_count = 0
