# Default mapper registration table and metric catalog

from collections import OrderedDict
from typing import List, Optional

from telemetry_quality.application import ApplicationMetadata
from telemetry_quality.energy_metrics import EcologicalFootprintMapper, PhysicalFootprintMapper
from telemetry_quality.engagement_metrics import ActivityMapper, LoyaltyMapper, PopularityMapper
from telemetry_quality.mappers import MapperRegistry
from telemetry_quality.metrics import Metric
from telemetry_quality.performance_metrics import ResourceUtilizationMapper, TimeBehaviorMapper
from telemetry_quality.security_metrics import ConfidentialityMapper, NonRepudiationMapper

DEFAULT_MAPPERS = (
    TimeBehaviorMapper,
    ResourceUtilizationMapper,
    ActivityMapper,
    PopularityMapper,
    LoyaltyMapper,
    ConfidentialityMapper,
    NonRepudiationMapper,
    PhysicalFootprintMapper,
    EcologicalFootprintMapper,
)

# Application type that enables every conditioned mapper
FULL_STACK_APP = ApplicationMetadata(name="catalog", type="frontend backend")


def build_default_registry() -> MapperRegistry:
    """Таблица маппинга по умолчанию / Default goal -> mapper table"""
    registry = MapperRegistry()
    for mapper_cls in DEFAULT_MAPPERS:
        registry.register_mapper(mapper_cls)
    return registry


def all_catalog_metrics(app_metadata: Optional[ApplicationMetadata] = None) -> List[Metric]:
    """
    Every metric the default mappers produce, deduplicated by acronym.
    Without metadata a full-stack application is assumed.
    """
    app_metadata = app_metadata or FULL_STACK_APP
    catalog: "OrderedDict[str, Metric]" = OrderedDict()
    for mapper_cls in DEFAULT_MAPPERS:
        for metric in mapper_cls(app_metadata).metrics:
            catalog.setdefault(metric.acronym, metric)
    return list(catalog.values())
