"""
Imagery edge-detection collaborators.

The snapping engine only depends on the EdgeMap they return. The HTTP
detector proxies an external imagery-analysis provider; the simulated one
fabricates a plausible ring of boundary edges for development and demos.
"""

import logging
import math
import random
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from ... import config
from .models import Coordinate, EdgeMap, EdgePoint, EdgeType, GeoBounds, ImageryQuality

logger = logging.getLogger(__name__)


class EdgeDetectionError(Exception):
    """The imagery provider could not produce an edge map."""


def quality_for_resolution(resolution: float) -> ImageryQuality:
    if resolution < 0.3:
        return ImageryQuality.HIGH
    if resolution < 0.6:
        return ImageryQuality.MEDIUM
    return ImageryQuality.LOW


def resolution_for_bounds(bounds: GeoBounds) -> float:
    """Meters per pixel the imagery provider serves for an area of this size."""
    span = bounds.max_span_degrees
    if span > 0.05:
        return 0.60
    if span > 0.01:
        return 0.30
    return 0.15


class EdgeDetector(ABC):
    @abstractmethod
    async def detect_edges(self, bounds: GeoBounds) -> EdgeMap:
        raise NotImplementedError


class SimulatedEdgeDetector(EdgeDetector):
    """
    Deterministic stand-in for a computer-vision provider.

    Emits a ring of property-line/fence edges ~30 m around the bounds center
    plus low-confidence vegetation noise. Not a real detection result.
    """

    RING_EDGES = 20
    NOISE_EDGES = 10
    PROPERTY_SIZE_DEGREES = 0.0003  # ~30 meters

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed

    async def detect_edges(self, bounds: GeoBounds) -> EdgeMap:
        rng = random.Random(self.seed)
        center = bounds.center
        size = self.PROPERTY_SIZE_DEGREES
        cos_lat = math.cos(math.radians(center.lat))
        edges = []

        for i in range(self.RING_EDGES):
            angle = (i / self.RING_EDGES) * math.pi * 2
            radius = size * (0.8 + rng.random() * 0.4)
            edges.append(
                EdgePoint(
                    location=Coordinate(
                        lat=center.lat + math.sin(angle) * radius,
                        lng=center.lng + math.cos(angle) * radius / cos_lat,
                    ),
                    strength=0.7 + rng.random() * 0.3,
                    direction=(math.degrees(angle) + 90) % 360,
                    type=EdgeType.FENCE if rng.random() > 0.7 else EdgeType.PROPERTY_LINE,
                )
            )

        for _ in range(self.NOISE_EDGES):
            edges.append(
                EdgePoint(
                    location=Coordinate(
                        lat=center.lat + (rng.random() - 0.5) * size * 2,
                        lng=center.lng + (rng.random() - 0.5) * size * 2,
                    ),
                    strength=0.3 + rng.random() * 0.4,
                    direction=rng.random() * 360,
                    type=EdgeType.VEGETATION,
                )
            )

        resolution = resolution_for_bounds(bounds)
        logger.debug(f"Simulated {len(edges)} edges around ({center.lat:.6f}, {center.lng:.6f})")
        return EdgeMap(edges=edges, resolution=resolution, quality=quality_for_resolution(resolution))


class HttpEdgeDetector(EdgeDetector):
    """Fetches an edge map for a bounding box from an imagery-analysis API."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def detect_edges(self, bounds: GeoBounds) -> EdgeMap:
        payload = {
            "bounds": {
                "south": bounds.south,
                "west": bounds.west,
                "north": bounds.north,
                "east": bounds.east,
            }
        }
        url = f"{self.base_url}/edges"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"Edge detection request failed: {e}")
            raise EdgeDetectionError("Edge detection provider unreachable") from e

        if resp.status_code >= 400:
            logger.warning(f"Edge detection error {resp.status_code}: {resp.text[:200]}")
            raise EdgeDetectionError(f"Edge detection provider returned {resp.status_code}")

        try:
            return self._parse_edge_map(resp.json())
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed edge map from provider: {e}")
            raise EdgeDetectionError("Malformed edge map from provider") from e

    @staticmethod
    def _parse_edge_map(data: dict) -> EdgeMap:
        edges = []
        for item in data.get("edges", []):
            location = item["location"]
            edges.append(
                EdgePoint(
                    location=Coordinate(lat=float(location["lat"]), lng=float(location["lng"])),
                    strength=min(1.0, max(0.0, float(item["strength"]))),
                    direction=float(item.get("direction", 0.0)) % 360,
                    type=EdgeType(item["type"]),
                )
            )

        resolution = float(data["resolution"])
        return EdgeMap(edges=edges, resolution=resolution, quality=quality_for_resolution(resolution))


def get_edge_detector() -> EdgeDetector:
    """Dependency factory: real provider when configured, simulated otherwise."""
    if config.EDGE_DETECTION_URL:
        return HttpEdgeDetector(
            config.EDGE_DETECTION_URL,
            api_key=config.EDGE_DETECTION_API_KEY,
            timeout=config.EDGE_DETECTION_TIMEOUT_SECONDS,
        )
    logger.warning("EDGE_DETECTION_URL not set - using simulated edge detection")
    return SimulatedEdgeDetector(seed=config.SIMULATED_EDGE_SEED)
