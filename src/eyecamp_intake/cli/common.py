"""Helpers shared by the CLI command modules."""

import logging
from typing import Optional

import click

from eyecamp_intake.camps.registry import CampRegistry
from eyecamp_intake.config import Config, load_config
from eyecamp_intake.form.engine import FormSettings, IntakeFormEngine
from eyecamp_intake.models.patient import PatientRecord
from eyecamp_intake.storage.drafts import FileDraftStore
from eyecamp_intake.storage.records import JsonPatientRepository
from eyecamp_intake.sync.service import SyncService, create_sync_service

logger = logging.getLogger(__name__)


def get_config(ctx: click.Context) -> Config:
    """Configuration loaded by the root command, or the defaults."""
    if ctx.obj and "config" in ctx.obj:
        return ctx.obj["config"]
    logger.info("Loading default configuration")
    return load_config()


def get_camp_registry(config: Config) -> CampRegistry:
    return CampRegistry(config.storage.camps_file)


def get_repository(config: Config) -> JsonPatientRepository:
    return JsonPatientRepository(config.storage.records_dir)


def get_draft_store(config: Config) -> FileDraftStore:
    return FileDraftStore(config.storage.drafts_dir)


def get_sync_service(config: Config) -> SyncService:
    return create_sync_service(config.sync)


def build_engine(
    config: Config,
    camp_id: str,
    record: Optional[PatientRecord] = None,
    with_sync: bool = True,
) -> IntakeFormEngine:
    """Engine wired to the configured local stores.

    The sync service is attached only when sync is enabled in configuration.
    """
    sync_service = get_sync_service(config) if with_sync and config.sync.enabled else None
    return IntakeFormEngine(
        camp_id,
        draft_store=get_draft_store(config),
        repository=get_repository(config),
        sync_service=sync_service,
        mode=config.form.mode,
        record=record,
        settings=FormSettings.from_config(config.form),
    )
