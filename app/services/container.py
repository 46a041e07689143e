"""Service composition: build the pipeline components once at start-up."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from app.config import Settings, settings
from app.services.access_grants import AccessGrantRegistry, utc_now
from app.services.cleanup_service import CleanupScheduler
from app.services.delivery_pipeline import DeliveryPipeline
from app.services.scheduler import SchedulerService
from app.services.whatsapp_service import WhatsAppService
from app.storage import IStorageBackend, create_storage_backend
from app.utils.validators import UploadValidator


@dataclass
class ServiceContainer:
    """Everything a request handler needs, shared for the process lifetime."""

    config: Settings
    storage: IStorageBackend
    grants: AccessGrantRegistry
    gateway: WhatsAppService
    scheduler: SchedulerService
    cleanup: CleanupScheduler
    pipeline: DeliveryPipeline


def build_container(
    config: Settings | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> ServiceContainer:
    config = config or settings
    storage = create_storage_backend(config)
    grants = AccessGrantRegistry(
        base_url=config.public_base_url,
        ttl_seconds=config.grant_ttl_seconds,
        clock=clock,
    )
    gateway = WhatsAppService(
        api_key=config.exotel_api_key,
        api_token=config.exotel_api_token,
        sid=config.exotel_sid,
        api_base_url=config.exotel_api_base_url,
        template_name=config.exotel_template_name,
        template_language=config.exotel_template_language,
        from_number=config.exotel_from_number,
        status_callback=config.exotel_status_callback,
        timeout=config.gateway_timeout_seconds,
        probe_timeout=config.url_probe_timeout_seconds,
    )
    scheduler = SchedulerService(grants, sweep_interval_seconds=config.grant_sweep_interval_seconds)
    cleanup = CleanupScheduler(
        storage,
        scheduler.scheduler,
        archive_delay_seconds=config.cleanup_archive_delay_seconds,
        ttl_seconds=config.grant_ttl_seconds,
        buffer_seconds=config.cleanup_buffer_seconds,
    )
    pipeline = DeliveryPipeline(
        storage=storage,
        grants=grants,
        gateway=gateway,
        cleanup=cleanup,
        validator=UploadValidator(config.max_upload_bytes, config.allowed_mime_types),
        cleanup_enabled=config.cleanup_enabled,
    )
    return ServiceContainer(
        config=config,
        storage=storage,
        grants=grants,
        gateway=gateway,
        scheduler=scheduler,
        cleanup=cleanup,
        pipeline=pipeline,
    )
