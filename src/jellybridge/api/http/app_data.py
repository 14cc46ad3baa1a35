from dataclasses import dataclass

from loguru import logger
from sqlmodel import Session

from src.jellybridge.core.models.lifecycle import SweepReport
from src.jellybridge.core.services import (
    AccountLifecycleService,
    AuthorizationBridge,
    CredentialVault,
    DbSessionService,
    DownstreamService,
    ExpiryScheduler,
    IdentityReconciliationService,
    InProcessKeyedLock,
    JellyfinClient,
    KeyedLock,
    LoggingNotificationTrigger,
    NotificationTrigger,
    RedisKeyedLock,
    RedisService,
    ShadowCredentialMigrationService,
)
from src.jellybridge.entities.local_user import LocalUserRepository
from src.jellybridge.runtime.config.config_data import ConfigData
from src.jellybridge.runtime.context import get_config


@dataclass
class ApplicationDependencies:
    config: ConfigData
    database_service: DbSessionService
    downstream: DownstreamService
    vault: CredentialVault
    notifier: NotificationTrigger
    login_lock: KeyedLock
    redis_service: RedisService | None = None
    scheduler: ExpiryScheduler | None = None

    def reconciliation_service(self, session: Session) -> IdentityReconciliationService:
        return IdentityReconciliationService(
            LocalUserRepository(session),
            self.downstream,
            self.vault,
            self.notifier,
            login_lock=self.login_lock,
            config=self.config,
        )

    def authorization_bridge(self) -> AuthorizationBridge:
        return AuthorizationBridge(self.downstream, self.vault, config=self.config)

    def lifecycle_service(self, session: Session) -> AccountLifecycleService:
        return AccountLifecycleService(LocalUserRepository(session), self.downstream, self.notifier)

    def credential_migration_service(self, session: Session) -> ShadowCredentialMigrationService:
        return ShadowCredentialMigrationService(
            LocalUserRepository(session),
            self.downstream,
            self.vault,
            secret_length=self.config.vault.secret_length,
        )

    async def run_sweep(self) -> SweepReport:
        """Run one expiry sweep in its own session."""
        with self.database_service.session_scope() as session:
            return await self.lifecycle_service(session).run_sweep(
                self.config.lifecycle.warn_window_days
            )

    async def trigger_sweep(self) -> SweepReport:
        """Run a sweep now, serialised with the scheduler when one is running."""
        if self.scheduler is not None:
            return await self.scheduler.trigger()
        return await self.run_sweep()

    async def aclose(self) -> None:
        if self.scheduler is not None:
            await self.scheduler.stop()
        if self.redis_service is not None:
            await self.redis_service.close()
        self.database_service.dispose()


def build_application_dependencies(
    config: ConfigData | None = None,
    *,
    with_scheduler: bool = True,
) -> ApplicationDependencies:
    """Wire the services for the API, the CLI and the worker."""
    config = config or get_config()

    redis_service = RedisService(config)
    redis_client = redis_service.get_client()
    if redis_client is not None:
        login_lock: KeyedLock = RedisKeyedLock(
            redis_client,
            timeout=config.redis.login_lock_timeout_s,
            blocking_timeout=config.redis.login_lock_wait_s,
        )
    else:
        login_lock = InProcessKeyedLock()

    deps = ApplicationDependencies(
        config=config,
        database_service=DbSessionService(config),
        downstream=JellyfinClient(config.downstream),
        vault=CredentialVault.from_settings(),
        notifier=LoggingNotificationTrigger(),
        login_lock=login_lock,
        redis_service=redis_service,
    )

    if with_scheduler and config.lifecycle.enabled and not config.temporal.enabled:
        deps.scheduler = ExpiryScheduler(
            deps.run_sweep,
            interval_seconds=config.lifecycle.interval_seconds,
            run_on_start=config.lifecycle.run_on_startup,
        )
    else:
        logger.info("In-process expiry scheduler disabled")

    return deps
