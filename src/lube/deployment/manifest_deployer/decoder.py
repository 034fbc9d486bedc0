"""Lazy multi-document YAML decoding.

``decode_documents`` yields one ResourceObject per kinded document. A
malformed document raises ``ManifestDecodeError`` at the point the consumer
reaches it, which ends the stream; objects yielded earlier are unaffected.
"""

from __future__ import annotations

from collections.abc import Iterator

import yaml
from loguru import logger

from ...errors import ManifestDecodeError
from ...infra.k8s import ResourceObject

TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class ManifestLoader(yaml.SafeLoader):
    """SafeLoader that leaves timestamps as strings so objects stay JSON-serializable."""


ManifestLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def decode_documents(text: str) -> Iterator[ResourceObject]:
    """Yield the resource objects found in a (multi-document) YAML string.

    Empty documents and mappings without a ``kind`` are skipped.

    Raises:
        ManifestDecodeError: For invalid YAML, a document that is not a
            mapping, or a kinded document missing apiVersion or metadata.name
    """
    documents = yaml.load_all(text, Loader=ManifestLoader)
    index = 0
    while True:
        index += 1
        try:
            document = next(documents)
        except StopIteration:
            return
        except yaml.YAMLError as e:
            raise ManifestDecodeError(
                f"Failed to read yaml document {index}", details=str(e)
            ) from e

        if document is None:
            continue
        if not isinstance(document, dict):
            raise ManifestDecodeError(
                f"Yaml document {index} is a {type(document).__name__}, not an object"
            )
        if not document.get("kind"):
            logger.debug(f"Skipping yaml document {index} without kind")
            continue

        obj = ResourceObject(document)
        if not obj.api_version:
            raise ManifestDecodeError(f"Yaml document {index} ({obj.kind}) has no apiVersion")
        if not obj.name:
            raise ManifestDecodeError(f"Yaml document {index} ({obj.kind}) has no metadata.name")
        yield obj
