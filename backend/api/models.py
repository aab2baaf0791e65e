from __future__ import annotations

from pydantic import BaseModel, Field

from features.types import Feature
from geo.aoi import Location, Rectangle
from greeter.service import Greeting, Person
from notes.types import RouteNote
from routeguide.types import RouteSummary


# Field names follow the protobuf JSON mapping (lowerCamelCase).


class ApiPoint(BaseModel):
    latitude: int = 0
    longitude: int = 0

    def to_domain(self) -> Location:
        return Location(latitude=self.latitude, longitude=self.longitude)

    @classmethod
    def from_domain(cls, point: Location) -> "ApiPoint":
        return cls(latitude=point.latitude, longitude=point.longitude)


class ApiRectangle(BaseModel):
    lo: ApiPoint = Field(default_factory=ApiPoint)
    hi: ApiPoint = Field(default_factory=ApiPoint)

    def to_domain(self) -> Rectangle:
        return Rectangle(lo=self.lo.to_domain(), hi=self.hi.to_domain())

    @classmethod
    def from_domain(cls, rect: Rectangle) -> "ApiRectangle":
        return cls(lo=ApiPoint.from_domain(rect.lo), hi=ApiPoint.from_domain(rect.hi))


class ApiFeature(BaseModel):
    name: str = ""
    location: ApiPoint = Field(default_factory=ApiPoint)

    def to_domain(self) -> Feature:
        return Feature(name=self.name, location=self.location.to_domain())

    @classmethod
    def from_domain(cls, feature: Feature) -> "ApiFeature":
        return cls(name=feature.name, location=ApiPoint.from_domain(feature.location))


class ApiRouteNote(BaseModel):
    location: ApiPoint = Field(default_factory=ApiPoint)
    message: str = ""

    def to_domain(self) -> RouteNote:
        return RouteNote(location=self.location.to_domain(), message=self.message)

    @classmethod
    def from_domain(cls, note: RouteNote) -> "ApiRouteNote":
        return cls(location=ApiPoint.from_domain(note.location), message=note.message)


class ApiRouteSummary(BaseModel):
    pointCount: int = 0
    featureCount: int = 0
    distance: int = 0
    elapsedTime: int = 0

    def to_domain(self) -> RouteSummary:
        return RouteSummary(
            point_count=self.pointCount,
            feature_count=self.featureCount,
            distance=self.distance,
            elapsed_time=self.elapsedTime,
        )

    @classmethod
    def from_domain(cls, summary: RouteSummary) -> "ApiRouteSummary":
        return cls(
            pointCount=summary.point_count,
            featureCount=summary.feature_count,
            distance=summary.distance,
            elapsedTime=summary.elapsed_time,
        )


class ApiPerson(BaseModel):
    firstName: str = ""
    lastName: str = ""

    def to_domain(self) -> Person:
        return Person(first_name=self.firstName, last_name=self.lastName)


class ApiGreeting(BaseModel):
    message: str = ""

    @classmethod
    def from_domain(cls, greeting: Greeting) -> "ApiGreeting":
        return cls(message=greeting.message)
