import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from adapters.external.database.exchange_account_repository_mongodb import ExchangeAccountRepositoryMongoDB
from adapters.external.database.execution_log_repository_mongodb import ExecutionLogRepositoryMongoDB
from adapters.external.database.mongodb_client import get_mongo_client
from adapters.external.database.strategy_repository_mongodb import StrategyRepositoryMongoDB
from adapters.external.exchange_factory import build_exchange_gateway
from config.settings import settings
from core.gateways.exchange_gateway import ExchangeGateway
from core.services.price_oracle import PriceOracle
from core.usecases.execute_due_strategies_use_case import ExecuteDueStrategiesUseCase

from .dca_scheduler import DcaScheduler


class DcaSupervisor:
    """
    High-level supervisor for the api-dca process.

    Responsibilities:
    - Connect to Mongo, ensure indexes.
    - Wire repositories, exchange gateway, price oracle and the execution use case.
    - Start/stop the scheduler that fires one execution pass per tick.
    """

    def __init__(self, mongo_client: Optional[AsyncIOMotorClient] = None):
        self._logger = logging.getLogger(self.__class__.__name__)
        self._mongo_client: Optional[AsyncIOMotorClient] = mongo_client
        self._owns_client = mongo_client is None
        self._db: Optional[AsyncIOMotorDatabase] = None

        self.strategy_repo: Optional[StrategyRepositoryMongoDB] = None
        self.log_repo: Optional[ExecutionLogRepositoryMongoDB] = None
        self.gateway: Optional[ExchangeGateway] = None
        self.price_oracle: Optional[PriceOracle] = None
        self.execute_uc: Optional[ExecuteDueStrategiesUseCase] = None
        self.scheduler: Optional[DcaScheduler] = None

    @property
    def db(self) -> Optional[AsyncIOMotorDatabase]:
        """Expose the AsyncIOMotorDatabase instance after start()."""
        return self._db

    async def start(self) -> None:
        """
        Create connections, ensure indexes, wire the engine and start the scheduler.
        """
        if self._mongo_client is None:
            self._mongo_client = get_mongo_client()
        self._db = self._mongo_client[settings.MONGODB_DB_NAME]

        self.strategy_repo = StrategyRepositoryMongoDB(self._db)
        self.log_repo = ExecutionLogRepositoryMongoDB(self._db)
        account_repo = ExchangeAccountRepositoryMongoDB(self._db)

        await self.strategy_repo.ensure_indexes()
        await self.log_repo.ensure_indexes()
        await account_repo.ensure_indexes()

        self.gateway = build_exchange_gateway(settings.DEFAULT_EXCHANGE, account_repo)
        self.price_oracle = PriceOracle(self.gateway, ttl_ms=settings.PRICE_CACHE_TTL_MS)

        self.execute_uc = ExecuteDueStrategiesUseCase(
            strategy_repo=self.strategy_repo,
            log_repo=self.log_repo,
            gateway=self.gateway,
            price_oracle=self.price_oracle,
        )

        self.scheduler = DcaScheduler(
            self.execute_uc,
            interval_sec=settings.SCHEDULER_INTERVAL_SEC,
            shutdown_grace_sec=settings.SCHEDULER_SHUTDOWN_GRACE_SEC,
        )
        if settings.ENABLE_SCHEDULER:
            self.scheduler.start()
        else:
            self._logger.info("Scheduler disabled (ENABLE_SCHEDULER=false); trigger endpoint only.")

        self._logger.info(
            "DCA engine ready: exchange=%s db=%s",
            settings.DEFAULT_EXCHANGE,
            settings.MONGODB_DB_NAME,
        )

    async def stop(self) -> None:
        """
        Gracefully stop the scheduler, exchange transport, and DB connection.
        """
        if self.scheduler:
            await self.scheduler.stop()

        if self.gateway:
            await self.gateway.aclose()

        if self._mongo_client and self._owns_client:
            self._mongo_client.close()
