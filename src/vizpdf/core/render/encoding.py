"""PlantUML server addressing: raw deflate plus PlantUML's URL-safe 64-symbol alphabet"""

import zlib


ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"


def canonicalize(source: str) -> str:
    """Wrap source in @startuml/@enduml unless it already carries the start directive."""
    if "@startuml" in source:
        return source
    return f"@startuml\n{source}\n@enduml"


def deflate_raw(data: bytes) -> bytes:
    """zlib deflate without header or checksum (wbits=-15), as the PlantUML server expects."""
    compressor = zlib.compressobj(9, zlib.DEFLATED, -15)
    return compressor.compress(data) + compressor.flush()


def encode64(data: bytes) -> str:
    """Pack every 3 bytes into 4 symbols; a trailing partial group is zero-padded to 4 symbols."""
    out = []
    for i in range(0, len(data), 3):
        b1 = data[i]
        b2 = data[i + 1] if i + 1 < len(data) else 0
        b3 = data[i + 2] if i + 2 < len(data) else 0
        out.append(ALPHABET[b1 >> 2])
        out.append(ALPHABET[((b1 & 0x3) << 4) | (b2 >> 4)])
        out.append(ALPHABET[((b2 & 0xF) << 2) | (b3 >> 6)])
        out.append(ALPHABET[b3 & 0x3F])
    return "".join(out)


def encode_plantuml(source: str) -> str:
    return encode64(deflate_raw(canonicalize(source).encode("utf-8")))


def plantuml_url(source: str, server_url: str, fmt: str = "png") -> str:
    return f"{server_url.rstrip('/')}/{fmt}/{encode_plantuml(source)}"
