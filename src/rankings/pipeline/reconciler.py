"""Merge scraped records into stored entities and persist them by natural key."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple, Type, TypeVar

from pydantic import ValidationError

from rankings.config.policies import StoragePolicy
from rankings.entities.core import CircuitTeam, College, HighSchool, Player, StoredEntity
from rankings.storage.base import RecordStore, StoreError
from rankings.utils.logging import get_logger

from .assets import AssetPipeline
from .metrics import MetricsCollector
from .seasons import MergedRecord, has_value, merge_season_maps, union_sources

E = TypeVar("E", bound=StoredEntity)


class Reconciler:
    """Read-merge-upsert for schools, circuit teams, colleges and players.

    Referenced entities are resolved by natural key and created with empty
    history on first sight. Resolved identities are memoised for the lifetime
    of the instance, so one run issues at most one lookup per referenced name.
    A :class:`StoreError`, or a stored row that no longer validates, is logged
    and counted for that one record; the method returns ``None`` and the
    caller moves on to the next record.
    """

    def __init__(
        self,
        store: RecordStore,
        assets: AssetPipeline,
        storage_policy: StoragePolicy,
        *,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.store = store
        self.assets = assets
        self.storage_policy = storage_policy
        self.metrics = metrics
        self._identities: Dict[Tuple[str, str], int | None] = {}
        self._logger = get_logger(component="reconciler")

    # ------------------------------------------------------------------
    # resolve-or-create
    # ------------------------------------------------------------------
    def _remember(self, table: str, key: str, row: Mapping[str, Any] | None) -> int | None:
        identity = row.get("id") if row else None
        self._identities[(table, key)] = identity
        return identity

    def _resolve_or_create(self, model: Type[StoredEntity], key: str, defaults: Mapping[str, Any]) -> int | None:
        cached = (model.table, key)
        if cached in self._identities:
            return self._identities[cached]
        lookup = {model.natural_key: key}
        row = self.store.select_one(model.table, lookup, columns=("id",))
        if row is None:
            self.store.upsert(
                model.table,
                {model.natural_key: key, **defaults},
                on_conflict=model.natural_key,
                ignore_duplicates=True,
            )
            row = self.store.select_one(model.table, lookup, columns=("id",))
            self._logger.info("Created referenced entity", table=model.table, key=key)
        return self._remember(model.table, key, row)

    def resolve_or_create_school(self, name: str) -> int | None:
        return self._resolve_or_create(HighSchool, name, {"ranks": {}, "records": {}, "key_wins": {}})

    def resolve_or_create_team(self, name: str) -> int | None:
        return self._resolve_or_create(
            CircuitTeam,
            name,
            {"ranks": {}, "records": {}, "key_wins": {}, "placements": {}},
        )

    def resolve_or_create_college(self, name: str, logo_url: str | None = None) -> int | None:
        """Resolve a college, uploading its logo when it is created or has none stored."""

        cached = (College.table, name)
        if cached in self._identities:
            return self._identities[cached]
        row = self.store.select_one(College.table, {"name": name}, columns=("id", "logo_path"))
        if row is not None and (row.get("logo_path") or not logo_url):
            return self._remember(College.table, name, row)

        logo_path = self.assets.store_remote_asset(
            logo_url,
            prefix=self.storage_policy.college_logo_prefix,
            name=name,
            default_ext=".png",
        )
        if row is not None and logo_path is None:
            return self._remember(College.table, name, row)

        payload = College(name=name, logo_path=logo_path, logo_url=logo_url).to_row()
        payload = {column: value for column, value in payload.items() if value is not None}
        stored = self.store.upsert(
            College.table,
            payload,
            on_conflict=College.natural_key,
            ignore_duplicates=logo_path is None,
        )
        if stored is None:
            stored = self.store.select_one(College.table, {"name": name}, columns=("id",))
        return self._remember(College.table, name, stored)

    # ------------------------------------------------------------------
    # entity reconciliation
    # ------------------------------------------------------------------
    def _load(self, model: Type[E], key: str) -> E | None:
        row = self.store.select_one(model.table, {model.natural_key: key})
        return model.model_validate(row) if row else None

    def _persist(self, entity: E) -> E:
        model = type(entity)
        stored = self.store.upsert(model.table, entity.to_row(), on_conflict=model.natural_key)
        result = model.model_validate(stored) if stored else entity
        if result.id is not None:
            self._identities[(model.table, result.key_value)] = result.id
        return result

    def _record_outcome(self, ok: bool) -> None:
        if self.metrics is not None:
            self.metrics.record_upsert(ok=ok)

    def _record_failure(self, message: str, exc: Exception, **fields: Any) -> None:
        self._logger.warning(
            message,
            status_code=getattr(exc, "status_code", None),
            error_type=type(exc).__name__,
            error=str(exc),
            **fields,
        )
        self._record_outcome(False)

    def reconcile_school(self, record: MergedRecord) -> HighSchool | None:
        try:
            prior = self._load(HighSchool, record.key)
            logo_path = prior.logo_path if prior else None
            if logo_path is None:
                logo_path = self.assets.store_remote_asset(
                    record.value("image_url"),
                    prefix=self.storage_policy.high_school_logo_prefix,
                    name=record.key,
                    default_ext=".png",
                )
            school = HighSchool(
                id=prior.id if prior else None,
                school=record.key,
                logo_path=logo_path,
                ranks=merge_season_maps(prior.ranks if prior else None, record.maps.get("ranks")),
                records=merge_season_maps(prior.records if prior else None, record.maps.get("records")),
                key_wins=merge_season_maps(prior.key_wins if prior else None, record.maps.get("key_wins")),
                source_urls=union_sources(prior.source_urls if prior else None, record.source_urls),
            )
            stored = self._persist(school)
        except (StoreError, ValidationError) as exc:
            self._record_failure("High school upsert failed", exc, school=record.key)
            return None
        self._record_outcome(True)
        return stored

    def reconcile_team(self, record: MergedRecord) -> CircuitTeam | None:
        try:
            prior = self._load(CircuitTeam, record.key)
            circuit = prior.circuit if prior and prior.circuit else record.value("circuit")
            team = CircuitTeam(
                id=prior.id if prior else None,
                team=record.key,
                circuit=circuit,
                ranks=merge_season_maps(prior.ranks if prior else None, record.maps.get("ranks")),
                records=merge_season_maps(prior.records if prior else None, record.maps.get("records")),
                key_wins=merge_season_maps(prior.key_wins if prior else None, record.maps.get("key_wins")),
                placements=merge_season_maps(prior.placements if prior else None, record.maps.get("placements")),
                source_urls=union_sources(prior.source_urls if prior else None, record.source_urls),
            )
            stored = self._persist(team)
        except (StoreError, ValidationError) as exc:
            self._record_failure("Circuit team upsert failed", exc, team=record.key)
            return None
        self._record_outcome(True)
        return stored

    def _player_image(self, record: MergedRecord, prior: Player | None) -> str | None:
        prior_path = prior.image_path if prior else None
        if prior_path and not self.storage_policy.refresh_assets:
            return prior_path
        uploaded = self.assets.store_remote_asset(
            record.value("image_url"),
            prefix=self.storage_policy.player_image_prefix,
            name=record.key,
        )
        return uploaded or prior_path

    def reconcile_player(self, record: MergedRecord) -> Player | None:
        grade_year = record.value("grade_year")
        rating = record.value("rating")
        try:
            prior = self._load(Player, record.key)

            def current(name: str) -> Any:
                value = record.value(name)
                if has_value(value):
                    return value
                return getattr(prior, name) if prior else None

            def identity(resolved: int | None, column: str) -> int | None:
                if resolved is not None:
                    return resolved
                return getattr(prior, column) if prior else None

            high_school = current("high_school")
            circuit_program = current("circuit_program")
            committed_college = current("committed_college")
            high_school_id = self.resolve_or_create_school(high_school) if high_school else None
            circuit_team_id = self.resolve_or_create_team(circuit_program) if circuit_program else None
            college_id = (
                self.resolve_or_create_college(committed_college, record.value("college_logo_url"))
                if committed_college
                else None
            )

            maps = {
                name: merge_season_maps(getattr(prior, name) if prior else None, record.maps.get(name))
                for name in (
                    "ranks",
                    "ratings",
                    "notes",
                    "positions",
                    "heights",
                    "high_schools",
                    "circuit_programs",
                    "committed_colleges",
                )
            }
            player = Player(
                id=prior.id if prior else None,
                name=record.key,
                grade_year=current("grade_year"),
                position=current("position"),
                height=current("height"),
                state=current("state"),
                high_school=high_school,
                high_school_id=identity(high_school_id, "high_school_id"),
                circuit_program=circuit_program,
                circuit_team_id=identity(circuit_team_id, "circuit_team_id"),
                committed_college=committed_college,
                committed_college_id=identity(college_id, "committed_college_id"),
                rating=current("rating"),
                rating_comment=current("rating_comment"),
                image_path=self._player_image(record, prior),
                source_url=record.source_url or (prior.source_url if prior else None),
                source_urls=union_sources(prior.source_urls if prior else None, record.source_urls),
                **maps,
            )
            stored = self._persist(player)
        except (StoreError, ValidationError) as exc:
            self._record_failure(
                "Player upsert failed", exc, name=record.key, grade_year=grade_year, rating=rating
            )
            return None
        self._record_outcome(True)
        return stored


__all__ = ["Reconciler"]
