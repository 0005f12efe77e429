"""
Data model for the crosupdates pipeline.

Upstream JSON is parsed once into the fixed-shape records below. Fields the
pipeline does not know about are dropped at parse time. Each record converts
back to the camelCase JSON shape consumed by page templates via `to_dict`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional

from crosupdates.constants import LONG_TERM_CHANNEL_ALIASES, SERVING_FIELDS
from crosupdates.exceptions import CacheError, DataFormatError


class RecoveryChannel(str, Enum):
    """Canonical recovery channel names."""

    STABLE = "stable"
    BETA = "beta"
    LTC = "ltc"
    LTR = "ltr"

    @classmethod
    def from_feed(cls, value: Any) -> Optional["RecoveryChannel"]:
        """
        Map a recovery feed `channel` value onto a canonical channel.

        The feed spells the long-term channel "lts"; both "lts" and "ltr" map
        to LTR. Unknown or missing values return None.
        """
        if not isinstance(value, str):
            return None
        name = value.lower()
        if name in LONG_TERM_CHANNEL_ALIASES:
            return cls.LTR
        try:
            return cls(name)
        except ValueError:
            return None


@dataclass
class ServingVersion:
    """The version currently served on one channel."""

    chrome_version: Optional[str] = None
    version: Optional[str] = None
    compared_to_most_common: Optional[Any] = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "ServingVersion":
        return cls(
            chrome_version=raw.get("chromeVersion"),
            version=raw.get("version"),
            compared_to_most_common=raw.get("comparedToMostCommon"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.chrome_version is not None:
            result["chromeVersion"] = self.chrome_version
        if self.version is not None:
            result["version"] = self.version
        if self.compared_to_most_common is not None:
            result["comparedToMostCommon"] = self.compared_to_most_common
        return result


def _parse_serving(raw: Mapping[str, Any]) -> Dict[str, ServingVersion]:
    serving: Dict[str, ServingVersion] = {}
    for channel, field_name in SERVING_FIELDS.items():
        value = raw.get(field_name)
        if isinstance(value, Mapping):
            serving[channel] = ServingVersion.from_raw(value)
    return serving


def _serving_to_dict(serving: Dict[str, ServingVersion]) -> Dict[str, Any]:
    return {
        field_name: serving[channel].to_dict()
        for channel, field_name in SERVING_FIELDS.items()
        if channel in serving
    }


@dataclass
class ChannelAvailability:
    """
    Which release channels a device is served on.

    Use `ChannelAvailability.from_raw` to pick the variant; the extended
    updates flag belongs to the variant and is never recomputed elsewhere.
    """

    serving: Dict[str, ServingVersion] = field(default_factory=dict)

    is_extended_updates: ClassVar[bool] = False

    @staticmethod
    def from_raw(raw: Mapping[str, Any], is_aue: bool) -> "ChannelAvailability":
        """
        Decide the variant for an upstream board or model record.

        A record is extended-updates-only when it is not AUE, has no
        `servingStable` field at all, and has `servingLtc` or `servingLtr`.
        """
        serving = _parse_serving(raw)
        has_stable = SERVING_FIELDS["stable"] in raw
        has_long_term = SERVING_FIELDS["ltc"] in raw or SERVING_FIELDS["ltr"] in raw
        if not is_aue and not has_stable and has_long_term:
            return ExtendedUpdatesOnly(serving=serving)
        return StandardChannels(serving=serving)

    def get(self, channel: str) -> Optional[ServingVersion]:
        return self.serving.get(channel)


@dataclass
class StandardChannels(ChannelAvailability):
    """Served on the regular channels (or AUE)."""


@dataclass
class ExtendedUpdatesOnly(ChannelAvailability):
    """Only LTC and/or LTR builds are served."""

    is_extended_updates: ClassVar[bool] = True

    @property
    def ltc(self) -> Optional[ServingVersion]:
        return self.serving.get("ltc")

    @property
    def ltr(self) -> Optional[ServingVersion]:
        return self.serving.get("ltr")


@dataclass
class RecoveryEntry:
    """One downloadable recovery image attached to a device."""

    version: Optional[str]
    url: Optional[str]
    channel: RecoveryChannel
    chrome_version: Optional[str] = None
    name: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    filesize: Optional[Any] = None
    zipfilesize: Optional[Any] = None
    md5: Optional[str] = None
    sha1: Optional[str] = None

    @classmethod
    def from_feed(
        cls, record: Mapping[str, Any], channel: RecoveryChannel
    ) -> "RecoveryEntry":
        return cls(
            version=record.get("version"),
            chrome_version=record.get("chrome_version"),
            url=record.get("url"),
            channel=channel,
            name=record.get("name"),
            manufacturer=record.get("manufacturer"),
            model=record.get("model"),
            filesize=record.get("filesize"),
            zipfilesize=record.get("zipfilesize"),
            md5=record.get("md5"),
            sha1=record.get("sha1"),
        )

    @classmethod
    def from_push_recovery(
        cls, device_key: str, version: str, url: Optional[str]
    ) -> "RecoveryEntry":
        return cls(
            version=version,
            url=url,
            channel=RecoveryChannel.STABLE,
            name=f"{device_key} Recovery",
            chrome_version=version,
        )

    @property
    def dedupe_key(self) -> str:
        return f"{self.chrome_version or self.version}-{self.url}"

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "version": self.version,
            "chromeVersion": self.chrome_version,
            "url": self.url,
            "channel": self.channel.value,
            "name": self.name,
            "manufacturer": self.manufacturer,
            "model": self.model,
            "filesize": self.filesize,
            "zipfilesize": self.zipfilesize,
            "md5": self.md5,
            "sha1": self.sha1,
        }
        return {key: value for key, value in result.items() if value is not None}


def _brand_names(raw: Mapping[str, Any]) -> List[str]:
    names = raw.get("brandNames")
    if not isinstance(names, list):
        return []
    return [str(name) for name in names if name is not None]


@dataclass
class Device:
    """A shipped Chrome OS device, keyed uniquely across the dataset."""

    key: str
    main_board: str
    channels: ChannelAvailability = field(default_factory=StandardChannels)
    is_aue: bool = False
    brand_names: List[str] = field(default_factory=list)
    push_recoveries: Dict[str, str] = field(default_factory=dict)
    brand_name_to_formatted_device_map: Optional[Dict[str, Any]] = None
    fsi_milestone_number: Optional[Any] = None
    recoveries: Dict[RecoveryChannel, List[RecoveryEntry]] = field(
        default_factory=dict
    )

    @classmethod
    def from_raw(cls, key: str, main_board: str, raw: Any) -> "Device":
        """
        Parse an upstream board or model record into a Device.

        Raises:
            DataFormatError: If `raw` is not a JSON object.
        """
        if not isinstance(raw, Mapping):
            raise DataFormatError(
                f"Device record for {key} is not an object",
                f"got {type(raw).__name__}",
            )
        is_aue = bool(raw.get("isAue", False))
        push_recoveries = raw.get("pushRecoveries")
        formatted_map = raw.get("brandNameToFormattedDeviceMap")
        return cls(
            key=key,
            main_board=main_board,
            channels=ChannelAvailability.from_raw(raw, is_aue),
            is_aue=is_aue,
            brand_names=_brand_names(raw),
            push_recoveries=(
                {str(k): v for k, v in push_recoveries.items()}
                if isinstance(push_recoveries, Mapping)
                else {}
            ),
            brand_name_to_formatted_device_map=(
                dict(formatted_map) if isinstance(formatted_map, Mapping) else None
            ),
            fsi_milestone_number=raw.get("fsiMilestoneNumber"),
        )

    @property
    def is_extended_updates(self) -> bool:
        return self.channels.is_extended_updates

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "mainBoard": self.main_board,
            "isExtendedUpdates": self.is_extended_updates,
            "isAue": self.is_aue,
            "brandNames": list(self.brand_names),
        }
        result.update(_serving_to_dict(self.channels.serving))
        if self.push_recoveries:
            result["pushRecoveries"] = dict(self.push_recoveries)
        if self.brand_name_to_formatted_device_map is not None:
            result["brandNameToFormattedDeviceMap"] = dict(
                self.brand_name_to_formatted_device_map
            )
        if self.fsi_milestone_number is not None:
            result["fsiMilestoneNumber"] = self.fsi_milestone_number
        if self.recoveries:
            result["recoveries"] = {
                channel.value: [entry.to_dict() for entry in entries]
                for channel, entries in self.recoveries.items()
            }
        return result


@dataclass
class Board:
    """
    A hardware reference design and the devices built on it.

    Board-level fields are kept for the single-device case, where the board
    key is also the device key.
    """

    key: str
    devices: Dict[str, Device] = field(default_factory=dict)
    is_aue: Optional[bool] = None
    brand_names: Optional[List[str]] = None
    serving: Dict[str, ServingVersion] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, key: str, raw: Mapping[str, Any]) -> "Board":
        return cls(
            key=key,
            is_aue=bool(raw["isAue"]) if "isAue" in raw else None,
            brand_names=_brand_names(raw) if "brandNames" in raw else None,
            serving=_parse_serving(raw),
        )

    @property
    def device_count(self) -> int:
        return len(self.devices)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "board": self.key,
            "devices": {key: device.to_dict() for key, device in self.devices.items()},
        }
        if self.is_aue is not None:
            result["isAue"] = self.is_aue
        if self.brand_names is not None:
            result["brandNames"] = list(self.brand_names)
        result.update(_serving_to_dict(self.serving))
        return result


@dataclass
class CacheEnvelope:
    """A persisted pipeline result and the hash of the input it came from."""

    data_hash: str
    timestamp: int
    data: Dict[str, Any]
    stats: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dataHash": self.data_hash,
            "timestamp": self.timestamp,
            "data": self.data,
            "stats": self.stats,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "CacheEnvelope":
        """
        Rebuild an envelope from its JSON form.

        Raises:
            CacheError: If required keys are missing or have the wrong type.
        """
        if not isinstance(raw, dict):
            raise CacheError("Cache envelope is not an object")
        data_hash = raw.get("dataHash")
        timestamp = raw.get("timestamp")
        data = raw.get("data")
        stats = raw.get("stats") or {}
        if not isinstance(data_hash, str) or not data_hash:
            raise CacheError("Cache envelope has no dataHash")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise CacheError("Cache envelope has no numeric timestamp")
        if not isinstance(data, dict):
            raise CacheError("Cache envelope has no data object")
        if not isinstance(stats, dict):
            raise CacheError("Cache envelope stats is not an object")
        return cls(
            data_hash=data_hash, timestamp=int(timestamp), data=data, stats=stats
        )


@dataclass
class EnhancedMetadata:
    """Supplemental per-board capability data."""

    android_app_support: bool = False
    android_version: Optional[str] = None
    is_chromebook_plus_device: bool = False
    kernel_version: Optional[str] = None
    eol_reached: bool = False
    hardware_id: Optional[str] = None
    architecture: Optional[str] = None

    @classmethod
    def from_board_data(cls, raw: Any) -> "EnhancedMetadata":
        """
        Parse an upstream per-board data document.

        The kernel version keeps only the part before the first hyphen of the
        first listed kernel, e.g. "5.15.0-abc123" becomes "5.15.0".

        Raises:
            DataFormatError: If `raw` is not a JSON object.
        """
        if not isinstance(raw, Mapping):
            raise DataFormatError(
                "Board data is not an object", f"got {type(raw).__name__}"
            )
        kernel_version = None
        kernels = raw.get("linux_kernel_versions")
        if isinstance(kernels, list) and kernels and kernels[0]:
            kernel_version = str(kernels[0]).split("-")[0]
        return cls(
            android_app_support=bool(raw.get("android_app_support") or False),
            android_version=raw.get("android_version") or None,
            is_chromebook_plus_device=bool(
                raw.get("is_chromebook_plus_device") or False
            ),
            kernel_version=kernel_version,
            eol_reached=bool(raw.get("eol_reached") or False),
            hardware_id=raw.get("sample_hwid") or None,
            architecture=raw.get("architecture") or None,
        )

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "EnhancedMetadata":
        return cls(
            android_app_support=bool(raw.get("android_app_support", False)),
            android_version=raw.get("android_version"),
            is_chromebook_plus_device=bool(raw.get("is_chromebook_plus_device", False)),
            kernel_version=raw.get("kernel_version"),
            eol_reached=bool(raw.get("eol_reached", False)),
            hardware_id=raw.get("hardware_id"),
            architecture=raw.get("architecture"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "android_app_support": self.android_app_support,
            "android_version": self.android_version,
            "is_chromebook_plus_device": self.is_chromebook_plus_device,
            "kernel_version": self.kernel_version,
            "eol_reached": self.eol_reached,
            "hardware_id": self.hardware_id,
            "architecture": self.architecture,
        }
