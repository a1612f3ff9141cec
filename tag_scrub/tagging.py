from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from mutagen import MutagenError
from mutagen.flac import FLAC, Picture
from mutagen.id3 import (
    APIC,
    COMM,
    ID3,
    POPM,
    PRIV,
    TXXX,
    UFID,
    USLT,
    WXXX,
    Frame,
    Frames,
    ID3NoHeaderError,
    TextFrame,
    UrlFrame,
)

from .models import ReadError, TagTree, WriteError
from .sanitize import is_list_of_records

logger = logging.getLogger(__name__)

TEXT_ALIASES = {
    "TIT1": "work",
    "TIT2": "title",
    "TIT3": "subtitle",
    "TALB": "album",
    "TPE1": "artist",
    "TPE2": "album_artist",
    "TPE3": "conductor",
    "TPE4": "remixer",
    "TCOM": "composer",
    "TEXT": "lyricist",
    "TCON": "genre",
    "TRCK": "track_number",
    "TPOS": "disc_number",
    "TDRC": "date",
    "TBPM": "bpm",
    "TKEY": "initial_key",
    "TLAN": "language",
    "TLEN": "length",
    "TCOP": "copyright",
    "TPUB": "publisher",
    "TENC": "encoded_by",
    "TSSE": "encoder_settings",
    "TSRC": "isrc",
    "TMED": "media_type",
    "MVNM": "movement",
}

URL_ALIASES = {
    "WCOM": "commercial_url",
    "WCOP": "copyright_url",
    "WOAF": "file_url",
    "WOAR": "artist_url",
    "WOAS": "source_url",
    "WORS": "radio_url",
    "WPAY": "payment_url",
    "WPUB": "publisher_url",
}

RECORD_KEYS = {
    "COMM": "comment",
    "USLT": "lyrics",
    "APIC": "image",
    "TXXX": "user_text",
    "WXXX": "user_url",
    "PRIV": "private",
    "UFID": "unique_id",
    "POPM": "popularimeter",
}

FRAME_IDS = {alias: frame_id for frame_id, alias in {**TEXT_ALIASES, **URL_ALIASES}.items()}
RECORD_FRAME_IDS = {key: frame_id for frame_id, key in RECORD_KEYS.items()}

FLAC_PICTURE_KEY = "picture"
UNKNOWN_LANGUAGE = "XXX"


class TagCodec:
    """Converts file tags to plain tag trees and back.

    Only frames/blocks that have a tree representation are replaced on write;
    anything else already stored in the file is left in place.
    """

    SUPPORTED_EXTS = {".mp3", ".flac"}

    def read(self, path: Path) -> TagTree:
        handlers = {
            ".mp3": self._read_id3,
            ".flac": self._read_flac,
        }
        handler = handlers.get(path.suffix.lower())
        if not handler:
            raise ReadError(f"Unsupported file type: {path.name}")
        return handler(path)

    def write(self, path: Path, tree: TagTree) -> None:
        handlers = {
            ".mp3": self._write_id3,
            ".flac": self._write_flac,
        }
        handler = handlers.get(path.suffix.lower())
        if not handler:
            raise WriteError(f"Unsupported file type: {path.name}")
        handler(path, tree)

    # ID3

    def _read_id3(self, path: Path) -> TagTree:
        try:
            tags = ID3(path)
        except ID3NoHeaderError as exc:
            raise ReadError(f"No ID3 tag in {path}") from exc
        except (MutagenError, OSError) as exc:
            raise ReadError(f"Could not read {path}: {exc}") from exc
        tree: TagTree = {}
        for frame in tags.values():
            frame_id = frame.FrameID
            record_key = RECORD_KEYS.get(frame_id)
            if record_key:
                tree.setdefault(record_key, []).append(self._id3_record(frame))
            elif isinstance(frame, TextFrame):
                _merge_values(tree, TEXT_ALIASES.get(frame_id, frame_id), [str(t) for t in frame.text])
            elif isinstance(frame, UrlFrame):
                _merge_values(tree, URL_ALIASES.get(frame_id, frame_id), [frame.url])
        return tree

    @staticmethod
    def _id3_record(frame: Frame) -> Dict[str, Any]:
        frame_id = frame.FrameID
        if frame_id == "COMM":
            return {
                "language": frame.lang,
                "description": frame.desc,
                "text": _collapse([str(t) for t in frame.text]),
            }
        if frame_id == "USLT":
            return {"language": frame.lang, "description": frame.desc, "text": frame.text}
        if frame_id == "APIC":
            return {
                "mime": frame.mime,
                "type": int(frame.type),
                "description": frame.desc,
                "data": frame.data,
            }
        if frame_id == "TXXX":
            return {"description": frame.desc, "value": _collapse([str(t) for t in frame.text])}
        if frame_id == "WXXX":
            return {"description": frame.desc, "url": frame.url}
        if frame_id in ("PRIV", "UFID"):
            return {"owner": frame.owner, "data": frame.data}
        return {
            "email": frame.email,
            "rating": frame.rating,
            "count": getattr(frame, "count", 0),
        }

    def _write_id3(self, path: Path, tree: TagTree) -> None:
        try:
            try:
                tags = ID3(path)
            except ID3NoHeaderError:
                tags = ID3()
            for frame in list(tags.values()):
                if self._is_modelled(frame):
                    tags.delall(frame.FrameID)
            for frame in self._id3_frames(tree):
                tags.add(frame)
            tags.save(path)
        except (MutagenError, OSError, ValueError) as exc:
            raise WriteError(f"Could not write {path}: {exc}") from exc

    @staticmethod
    def _is_modelled(frame: Frame) -> bool:
        return frame.FrameID in RECORD_KEYS or isinstance(frame, (TextFrame, UrlFrame))

    def _id3_frames(self, tree: TagTree) -> Iterator[Frame]:
        for key, value in tree.items():
            record_frame_id = RECORD_FRAME_IDS.get(key)
            if record_frame_id:
                if isinstance(value, Mapping):
                    value = [value]
                if not is_list_of_records(value):
                    logger.warning("Ignoring %s: expected a list of records", key)
                    continue
                for record in value:
                    frame = self._record_frame(record_frame_id, record)
                    if frame is None:
                        logger.debug("Skipping incomplete %s record", key)
                        continue
                    yield frame
                continue
            frame_id = FRAME_IDS.get(key, key)
            frame_cls = Frames.get(frame_id)
            if frame_cls is None or frame_id in RECORD_KEYS:
                logger.warning("Ignoring unknown tag %s", key)
                continue
            texts = _text_list(value)
            if not texts:
                continue
            if issubclass(frame_cls, UrlFrame):
                for url in texts:
                    yield frame_cls(url=url)
            elif issubclass(frame_cls, TextFrame):
                yield frame_cls(encoding=3, text=texts)
            else:
                logger.warning("Ignoring %s: %s frames are not text", key, frame_id)

    @staticmethod
    def _record_frame(frame_id: str, record: Mapping[str, Any]) -> Optional[Frame]:
        desc = _first_text(record.get("description")) or ""
        if frame_id == "COMM":
            text = _text_list(record.get("text"))
            if not text:
                return None
            return COMM(encoding=3, lang=_language(record.get("language")), desc=desc, text=text)
        if frame_id == "USLT":
            text = "\n".join(_text_list(record.get("text")))
            if not text:
                return None
            return USLT(encoding=3, lang=_language(record.get("language")), desc=desc, text=text)
        if frame_id == "APIC":
            data = record.get("data")
            if not isinstance(data, bytes) or not data:
                return None
            return APIC(
                encoding=3,
                mime=_first_text(record.get("mime")) or "image/jpeg",
                type=_as_int(record.get("type"), 3),
                desc=desc,
                data=data,
            )
        if frame_id == "TXXX":
            value = _text_list(record.get("value"))
            if not value:
                return None
            return TXXX(encoding=3, desc=desc, text=value)
        if frame_id == "WXXX":
            url = _first_text(record.get("url"))
            if not url:
                return None
            return WXXX(encoding=3, desc=desc, url=url)
        if frame_id in ("PRIV", "UFID"):
            owner = _first_text(record.get("owner"))
            data = record.get("data")
            if not owner:
                return None
            frame_cls = PRIV if frame_id == "PRIV" else UFID
            return frame_cls(owner=owner, data=data if isinstance(data, bytes) else b"")
        return POPM(
            email=_first_text(record.get("email")) or "",
            rating=_as_int(record.get("rating"), 0),
            count=_as_int(record.get("count"), 0),
        )

    # FLAC

    def _read_flac(self, path: Path) -> TagTree:
        try:
            audio = FLAC(path)
        except (MutagenError, OSError) as exc:
            raise ReadError(f"Could not read {path}: {exc}") from exc
        if audio.tags is None and not audio.pictures:
            raise ReadError(f"No Vorbis comment block in {path}")
        tree: TagTree = {}
        for key, value in audio.tags or []:
            _merge_values(tree, key.lower(), [value])
        if audio.pictures:
            tree[FLAC_PICTURE_KEY] = [
                {
                    "type": int(picture.type),
                    "mime": picture.mime,
                    "description": picture.desc,
                    "width": picture.width,
                    "height": picture.height,
                    "depth": picture.depth,
                    "colors": picture.colors,
                    "data": picture.data,
                }
                for picture in audio.pictures
            ]
        return tree

    def _write_flac(self, path: Path, tree: TagTree) -> None:
        try:
            audio = FLAC(path)
            if audio.tags is None:
                audio.add_tags()
            audio.tags.clear()
            audio.clear_pictures()
            for key, value in tree.items():
                if key == FLAC_PICTURE_KEY and is_list_of_records(value):
                    for record in value:
                        picture = self._flac_picture(record)
                        if picture is None:
                            logger.debug("Skipping incomplete picture record")
                            continue
                        audio.add_picture(picture)
                    continue
                values = _text_list(value)
                if values:
                    audio.tags[key] = values
            audio.save()
        except (MutagenError, OSError, ValueError) as exc:
            raise WriteError(f"Could not write {path}: {exc}") from exc

    @staticmethod
    def _flac_picture(record: Mapping[str, Any]) -> Optional[Picture]:
        data = record.get("data")
        if not isinstance(data, bytes) or not data:
            return None
        picture = Picture()
        picture.data = data
        picture.type = _as_int(record.get("type"), 3)
        picture.mime = _first_text(record.get("mime")) or "image/jpeg"
        picture.desc = _first_text(record.get("description")) or ""
        picture.width = _as_int(record.get("width"), 0)
        picture.height = _as_int(record.get("height"), 0)
        picture.depth = _as_int(record.get("depth"), 0)
        picture.colors = _as_int(record.get("colors"), 0)
        return picture


def _collapse(values: List[str]) -> Any:
    if len(values) == 1:
        return values[0]
    return values


def _merge_values(tree: TagTree, key: str, values: List[str]) -> None:
    existing = tree.get(key)
    if existing is None:
        tree[key] = _collapse(values)
        return
    current = existing if isinstance(existing, list) else [existing]
    tree[key] = current + values


def _text_list(value: Any) -> List[str]:
    if value is None or isinstance(value, (bytes, Mapping)):
        return []
    if isinstance(value, (list, tuple)):
        texts: List[str] = []
        for item in value:
            texts.extend(_text_list(item))
        return texts
    text = str(value)
    return [text] if text else []


def _first_text(value: Any) -> Optional[str]:
    texts = _text_list(value)
    return texts[0] if texts else None


def _language(value: Any) -> str:
    lang = _first_text(value)
    if lang and len(lang) == 3 and lang.isascii():
        return lang
    return UNKNOWN_LANGUAGE


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return default
