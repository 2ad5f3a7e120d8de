"""
Typed schemas for face recognition responses and processed capture results.

Every payload is validated as a whole: a record with a missing or mistyped field
fails the whole decode with ``SchemaError`` instead of being dropped.
"""

from typing import List, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import SchemaError

Model = TypeVar("Model", bound=BaseModel)


class _ServiceModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class BoundingBox(_ServiceModel):
    """Face box as ratios of the image width and height."""

    left: float = Field(alias="Left")
    top: float = Field(alias="Top")
    width: float = Field(alias="Width")
    height: float = Field(alias="Height")

    def to_pixels(self, image_width: float, image_height: float) -> Tuple[float, float, float, float]:
        """(x, y, width, height) of the box in an image of the given size."""
        return (
            self.left * image_width,
            self.top * image_height,
            self.width * image_width,
            self.height * image_height,
        )


class Face(_ServiceModel):
    face_id: str = Field(alias="FaceId")
    bounding_box: BoundingBox = Field(alias="BoundingBox")
    confidence: float = Field(alias="Confidence")
    image_id: Optional[str] = Field(default=None, alias="ImageId")
    external_image_id: Optional[str] = Field(default=None, alias="ExternalImageId")


class FaceRecord(_ServiceModel):
    face: Face = Field(alias="Face")


class IndexFacesResponse(_ServiceModel):
    face_records: List[FaceRecord] = Field(alias="FaceRecords")
    face_model_version: Optional[str] = Field(default=None, alias="FaceModelVersion")

    @field_validator("face_records", mode="before")
    @classmethod
    def _single_record_as_list(cls, value):
        if isinstance(value, dict):
            return [value]
        return value


class FaceMatch(_ServiceModel):
    face: Face = Field(alias="Face")
    similarity: float = Field(alias="Similarity")


class SearchFacesResponse(_ServiceModel):
    searched_face_id: str = Field(alias="SearchedFaceId")
    face_matches: List[FaceMatch] = Field(alias="FaceMatches")
    face_model_version: Optional[str] = Field(default=None, alias="FaceModelVersion")


class SearchFacesByImageResponse(_ServiceModel):
    searched_face_bounding_box: Optional[BoundingBox] = Field(default=None, alias="SearchedFaceBoundingBox")
    searched_face_confidence: Optional[float] = Field(default=None, alias="SearchedFaceConfidence")
    face_matches: List[FaceMatch] = Field(alias="FaceMatches")
    face_model_version: Optional[str] = Field(default=None, alias="FaceModelVersion")


class PersonFace(BaseModel):
    """One person found in a processed capture."""

    model_config = ConfigDict(frozen=True)

    face_id: Optional[str] = None
    bounding_box: BoundingBox
    status: str
    saved_face_image_key: Optional[str] = None


class ProcessedResult(BaseModel):
    """Result document written next to an uploaded capture by the backend."""

    model_config = ConfigDict(frozen=True)

    original_image_key: str
    people: List[PersonFace]


def decode(model: Type[Model], payload: Union[str, bytes]) -> Model:
    """Validate a JSON payload against ``model``, raising ``SchemaError`` on mismatch."""
    try:
        return model.model_validate_json(payload)
    except ValidationError as e:
        raise SchemaError(
            f"Invalid {model.__name__} payload: {e.error_count()} error(s)",
            errors=e.errors(),
        ) from e
