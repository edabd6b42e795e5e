"""
AEMET OpenData client for national weather alerts.

AEMET serves data in two steps: the API call returns a JSON envelope whose
``datos`` field points at the real payload. For CAP alerts the payload is a
tar archive with one CAP 1.2 XML document per warning. This module turns
that archive into a GeoJSON FeatureCollection with one Polygon feature per
alert area.

Usage:
    client = AemetClient(get_aemet_settings())
    collection = await client.fetch_alerts_geojson()
"""

from __future__ import annotations

import io
import logging
import tarfile
import xml.etree.ElementTree as ET
from typing import Any

import httpx

from alerts.aemet_config import AemetSettings

logger = logging.getLogger(__name__)

CAP_NS = {"cap": "urn:oasis:names:tc:emergency:cap:1.2"}
PREFERRED_LANGUAGE = "es-ES"

PARAM_LEVEL = "AEMET-Meteoalerta nivel"
PARAM_PHENOMENON = "AEMET-Meteoalerta fenomeno"
PARAM_PROBABILITY = "AEMET-Meteoalerta probabilidad"


class AemetApiError(RuntimeError):
    """Raised when AEMET answers with an error envelope or unusable payload."""


def empty_feature_collection() -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": []}


# =============================================================================
# CAP PARSING
# =============================================================================

def _text(element: ET.Element, path: str) -> str | None:
    found = element.find(path, CAP_NS)
    if found is None or found.text is None:
        return None
    return found.text.strip()


def _parameters(info: ET.Element) -> dict[str, str]:
    params: dict[str, str] = {}
    for param in info.findall("cap:parameter", CAP_NS):
        name = _text(param, "cap:valueName")
        value = _text(param, "cap:value")
        if name and value is not None:
            params[name] = value
    return params


def _pick_info(alert: ET.Element) -> ET.Element | None:
    infos = alert.findall("cap:info", CAP_NS)
    if not infos:
        return None
    for info in infos:
        if _text(info, "cap:language") == PREFERRED_LANGUAGE:
            return info
    return infos[0]


def parse_cap_polygon(raw: str) -> list[list[float]]:
    """
    Convert a CAP polygon ("lat,lon lat,lon ...") to a closed GeoJSON ring.

    Raises:
        ValueError: If a point is malformed or the ring has fewer than 3 points
    """
    ring: list[list[float]] = []
    for point in raw.split():
        lat_str, lon_str = point.split(",")
        ring.append([float(lon_str), float(lat_str)])
    if len(ring) < 3:
        raise ValueError(f"Polygon needs at least 3 points, got {len(ring)}")
    if ring[0] != ring[-1]:
        ring.append(list(ring[0]))
    return ring


def cap_to_features(document: bytes) -> list[dict[str, Any]]:
    """Build GeoJSON features for every polygon area of a CAP alert document."""
    alert = ET.fromstring(document)
    info = _pick_info(alert)
    if info is None:
        return []

    params = _parameters(info)
    phenomenon = params.get(PARAM_PHENOMENON)
    if phenomenon and ";" in phenomenon:
        phenomenon = phenomenon.split(";", 1)[1].strip()

    base_properties = {
        "nivel": params.get(PARAM_LEVEL),
        "fenomeno": phenomenon,
        "descripcion": _text(info, "cap:description"),
        "probabilidad": params.get(PARAM_PROBABILITY),
        "onset": _text(info, "cap:onset"),
        "expires": _text(info, "cap:expires"),
        "effective": _text(info, "cap:effective"),
        "severity": _text(info, "cap:severity"),
        "certainty": _text(info, "cap:certainty"),
        "urgency": _text(info, "cap:urgency"),
    }

    features: list[dict[str, Any]] = []
    for area in info.findall("cap:area", CAP_NS):
        area_desc = _text(area, "cap:areaDesc")
        for polygon in area.findall("cap:polygon", CAP_NS):
            if not polygon.text:
                continue
            try:
                ring = parse_cap_polygon(polygon.text)
            except ValueError as exc:
                logger.warning("Skipping malformed polygon in area %s: %s", area_desc, exc)
                continue
            features.append({
                "type": "Feature",
                "geometry": {"type": "Polygon", "coordinates": [ring]},
                "properties": {**base_properties, "areaDesc": area_desc},
            })
    return features


def _iter_cap_documents(payload: bytes):
    """Yield (name, bytes) for each CAP document in a tar archive or bare XML body."""
    buffer = io.BytesIO(payload)
    if not tarfile.is_tarfile(buffer):
        yield "payload.xml", payload
        return

    buffer.seek(0)
    with tarfile.open(fileobj=buffer, mode="r:*") as archive:
        for member in archive.getmembers():
            if not member.isfile():
                continue
            handle = archive.extractfile(member)
            if handle is None:
                continue
            yield member.name, handle.read()


def cap_archive_to_geojson(payload: bytes) -> dict[str, Any]:
    """Convert an AEMET CAP payload into a FeatureCollection."""
    collection = empty_feature_collection()
    for name, document in _iter_cap_documents(payload):
        try:
            collection["features"].extend(cap_to_features(document))
        except ET.ParseError as exc:
            logger.warning("Skipping unreadable CAP document %s: %s", name, exc)
    return collection


# =============================================================================
# CLIENT
# =============================================================================

class AemetClient:
    """Fetches the latest national alerts from AEMET OpenData."""

    def __init__(
        self,
        settings: AemetSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        logger.info("AemetClient initialized for area %s", settings.alerts_area)

    @property
    def alerts_url(self) -> str:
        return f"{self._settings.base_url}/api/avisos_cap/ultimoelaborado/area/{self._settings.alerts_area}"

    async def fetch_alerts_geojson(self) -> dict[str, Any]:
        """
        Download the latest CAP alerts and return them as GeoJSON.

        Returns:
            FeatureCollection dict (empty when AEMET reports no alerts)

        Raises:
            AemetApiError: If AEMET answers with an error envelope
            httpx.HTTPError: On transport or HTTP status failures
        """
        async with httpx.AsyncClient(
            timeout=self._settings.timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.get(self.alerts_url, headers={"api_key": self._settings.api_key})
            response.raise_for_status()
            envelope = response.json()

            estado = envelope.get("estado")
            if estado == 404:
                logger.info("AEMET reports no active alerts: %s", envelope.get("descripcion"))
                return empty_feature_collection()
            if estado != 200 or not envelope.get("datos"):
                raise AemetApiError(
                    f"AEMET alerts request failed (estado={estado}): {envelope.get('descripcion')}"
                )

            data_response = await client.get(envelope["datos"])
            data_response.raise_for_status()

        collection = cap_archive_to_geojson(data_response.content)
        logger.debug("Parsed %d alert features from AEMET", len(collection["features"]))
        return collection


__all__ = [
    "AemetClient",
    "AemetApiError",
    "cap_archive_to_geojson",
    "cap_to_features",
    "parse_cap_polygon",
    "empty_feature_collection",
]
