import os
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _expand(v: str | None) -> str | None:
    return None if v is None else os.path.expandvars(os.path.expanduser(v))


class LogModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False
    sample_every: int = Field(default=1000, ge=1)
    records_file: str | None = None  # JSONL of per-trajectory scores

    @field_validator("records_file")
    @classmethod
    def _expand_paths(cls, v: str | None) -> str | None:
        return _expand(v)


# ----------------- DISTANCE ---------------------


class DistanceEuclideanModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["euclidean"] = "euclidean"


class DistanceGreatCircleModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["great_circle"] = "great_circle"
    radius_m: float = Field(default=6_371_000.0, gt=0)


DistanceUnion = Annotated[
    DistanceEuclideanModel | DistanceGreatCircleModel,
    Field(discriminator="kind"),
]


def distance_for_dataset(dataset: str) -> DistanceEuclideanModel | DistanceGreatCircleModel:
    # raw lon/lat datasets; the others ship projected coordinates
    if "Beijing" in dataset:
        return DistanceGreatCircleModel()
    return DistanceEuclideanModel()


# ----------------- PIPELINES ---------------------


class IngestionModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    trajectory_folder: str
    down_sample_rate: int = Field(default=1, ge=1)
    tolerance: float = Field(default=0.0, ge=0)
    pattern: Literal["any", "trip"] = "any"
    max_workers: int = Field(default=8, ge=1)
    output_folder: str | None = None

    @field_validator("trajectory_folder", "output_folder")
    @classmethod
    def _expand_paths(cls, v: str | None) -> str | None:
        return _expand(v)


class EvaluationModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    predicted_folder: str
    ground_truth_folder: str
    map_file: str
    weighting: Literal["count", "length"] = "count"
    workers: int = Field(default=1, ge=1)
    output_file: str | None = None

    @field_validator("predicted_folder", "ground_truth_folder", "map_file", "output_file")
    @classmethod
    def _expand_paths(cls, v: str | None) -> str | None:
        return _expand(v)


# ------------------------------------------------------------------


class RunModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = "local"
    dataset: str = ""
    method: str = ""
    distance: DistanceUnion | None = None
    log: LogModel = Field(default_factory=LogModel)
    evaluation: EvaluationModel | None = None
    ingestion: IngestionModel | None = None

    @model_validator(mode="after")
    def _pick_distance(self):
        if self.distance is None:
            self.distance = distance_for_dataset(self.dataset)
        return self

    @model_validator(mode="after")
    def _something_to_do(self):
        if self.evaluation is None and self.ingestion is None:
            raise ValueError("config needs an 'evaluation' or an 'ingestion' section")
        return self
