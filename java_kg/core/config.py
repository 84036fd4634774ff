from pydantic_settings import BaseSettings

from java_kg.graph.constants import DEFAULT_SOURCE_PATHS
from java_kg.graph.extraction_policy import (
    CUSTOM_SCENARIO,
    DEFAULT_SCENARIO,
    ExtractionPolicy,
    ResolutionFailurePolicy,
    ThirdPartyCallPolicy,
)
from java_kg.graph.graph_types import EntityKind, RelationKind


class Settings(BaseSettings):
    project_name: str = "java-kg"

    project_root: str = "."
    source_paths: list[str] = list(DEFAULT_SOURCE_PATHS)
    project_packages: list[str] = []
    include_patterns: list[str] = []
    exclude_patterns: list[str] = []

    scenario: str = DEFAULT_SCENARIO
    # Kind -> enabled, read only when scenario is "custom"
    entities: dict[EntityKind, bool] = {}
    relations: dict[RelationKind, bool] = {}
    third_party_call_policy: ThirdPartyCallPolicy = ThirdPartyCallPolicy.mark
    on_resolution_failure: ResolutionFailurePolicy = ResolutionFailurePolicy.warn
    include_annotations: bool = True
    include_javadoc: bool = True

    max_workers: int | None = None
    semantic_resolution: bool = True

    output_path: str | None = None

    neo4j_uri: str | None = None
    neo4j_username: str | None = None
    neo4j_password: str | None = None
    neo4j_database: str = "neo4j"

    log_level: str = "INFO"

    class Config:
        env_prefix = "JAVA_KG_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def build_extraction_policy(self) -> ExtractionPolicy:
        """The immutable extraction policy described by these settings."""
        options = dict(
            third_party_call_policy=self.third_party_call_policy,
            on_resolution_failure=self.on_resolution_failure,
            include_annotations=self.include_annotations,
            include_javadoc=self.include_javadoc,
            project_packages=frozenset(self.project_packages),
        )
        if self.scenario == CUSTOM_SCENARIO:
            return ExtractionPolicy.custom(self.entities, self.relations, **options)
        return ExtractionPolicy.from_scenario(self.scenario, **options)

    @property
    def neo4j_enabled(self) -> bool:
        return bool(self.neo4j_uri)


settings = Settings()
