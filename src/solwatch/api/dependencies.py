"""FastAPI dependencies for dependency injection.

Every service comes from the ServiceContainer stored on `app.state` by the
lifespan; tests override the individual getters.
"""

from typing import Annotated

from fastapi import Depends, Request

from solwatch.config.settings import Settings, get_settings
from solwatch.core.container import ServiceContainer
from solwatch.core.exceptions import ConfigurationError
from solwatch.data.supabase.repositories.transaction_repo import TransactionRepository
from solwatch.data.supabase.repositories.wallet_repo import GroupRepository
from solwatch.services.ingestion.monitor import WalletMonitor
from solwatch.services.notify.broker import TransactionBroker
from solwatch.services.pnl.aggregator import PnLAggregator
from solwatch.services.pricing.price_resolver import PriceResolver
from solwatch.services.wallet.registry import WalletRegistry

SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_container(request: Request) -> ServiceContainer:
    """Container created by the application lifespan."""
    container: ServiceContainer | None = getattr(request.app.state, "container", None)
    if container is None:
        raise ConfigurationError("Service container not initialized")
    return container


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]


def get_wallet_registry(container: ContainerDep) -> WalletRegistry:
    return container.wallets


def get_group_repo(container: ContainerDep) -> GroupRepository:
    return container.group_repo


def get_transaction_repo(container: ContainerDep) -> TransactionRepository:
    return container.transaction_repo


def get_broker(container: ContainerDep) -> TransactionBroker:
    return container.broker


def get_price_resolver(container: ContainerDep) -> PriceResolver:
    return container.price_resolver


def get_pnl_aggregator(container: ContainerDep) -> PnLAggregator:
    return container.pnl


def get_monitor(container: ContainerDep) -> WalletMonitor:
    return container.monitor


WalletRegistryDep = Annotated[WalletRegistry, Depends(get_wallet_registry)]
GroupRepoDep = Annotated[GroupRepository, Depends(get_group_repo)]
TransactionRepoDep = Annotated[TransactionRepository, Depends(get_transaction_repo)]
BrokerDep = Annotated[TransactionBroker, Depends(get_broker)]
PriceResolverDep = Annotated[PriceResolver, Depends(get_price_resolver)]
PnLAggregatorDep = Annotated[PnLAggregator, Depends(get_pnl_aggregator)]
MonitorDep = Annotated[WalletMonitor, Depends(get_monitor)]
