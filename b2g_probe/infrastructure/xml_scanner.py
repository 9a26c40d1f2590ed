"""Incremental XML implementation of the XmlAttributeScanner port."""

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional
from xml.etree import ElementTree

from ..application.domain import XmlAttributeScanner
from ..application.exceptions import ScanError, ValueNotFoundError


def _local_name(name: str) -> str:
    """Drops an ElementTree '{namespace}' prefix and folds case."""
    return name.rsplit("}", 1)[-1].upper()


class PullXmlAttributeScanner(XmlAttributeScanner):
    """
    Feeds a document to a pull parser chunk by chunk and stops reading as
    soon as a matching element has been opened.

    Tag and attribute names are compared case-insensitively; attribute
    values are compared exactly. A matching element without a non-empty
    target attribute does not count as a match. Closed elements are
    detached from their parent, so only the chain of currently open
    elements is ever held in memory.
    """

    def __init__(self, chunk_size: int = 65536):
        """Initializes the scanner."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.chunk_size = chunk_size

    def _match(
        self,
        parser: ElementTree.XMLPullParser,
        open_elements: List[ElementTree.Element],
        tag_name: str,
        attribute_name: str,
        filter_name: str,
        filter_value: str,
    ) -> Optional[str]:
        """Checks the elements opened since the last call for a match."""
        for event, element in parser.read_events():
            if event == "end":
                open_elements.pop()
                if open_elements:
                    open_elements[-1].remove(element)
                continue

            open_elements.append(element)
            if _local_name(element.tag) != tag_name.upper():
                continue
            attributes: Dict[str, str] = {
                _local_name(key): value for key, value in element.attrib.items()
            }
            if attributes.get(filter_name.upper()) != filter_value:
                continue
            value = attributes.get(attribute_name.upper())
            if value:
                return value
        return None

    def _blocking_scan(
        self,
        xml_path: Path,
        tag_name: str,
        attribute_name: str,
        filter_name: str,
        filter_value: str,
    ) -> str:
        """Performs the blocking read and parse loop."""

        parser = ElementTree.XMLPullParser(events=("start", "end"))
        open_elements: List[ElementTree.Element] = []
        criteria = (
            open_elements, tag_name, attribute_name, filter_name, filter_value
        )

        try:
            with open(xml_path, "rb") as f:
                while chunk := f.read(self.chunk_size):
                    parser.feed(chunk)
                    value = self._match(parser, *criteria)
                    if value is not None:
                        return value
            parser.close()
            value = self._match(parser, *criteria)
        except ElementTree.ParseError as e:
            raise ScanError(f"Malformed XML in {xml_path.name}: {e}") from e
        except OSError as e:
            raise ScanError(f"Unable to read {xml_path.name}: {e}") from e

        if value is None:
            raise ValueNotFoundError(
                f"Unable to find {tag_name} with {filter_name}={filter_value} "
                f"in {xml_path.name}"
            )
        return value

    async def scan_for_attribute(
        self,
        xml_path: Path,
        tag_name: str,
        attribute_name: str,
        filter_name: str,
        filter_value: str,
    ) -> str:
        """
        Returns an attribute of the first matching element of a document.

        This public method fulfills the XmlAttributeScanner port contract.
        The document is never held in memory as a whole.

        Raises:
            ValueNotFoundError: If the document holds no matching element.
            ScanError: If the document is malformed or unreadable.
        """

        self.logger.debug(
            f"Scanning {xml_path.name} for {tag_name} "
            f"{filter_name}={filter_value}..."
        )
        return await asyncio.to_thread(
            self._blocking_scan,
            xml_path,
            tag_name,
            attribute_name,
            filter_name,
            filter_value,
        )
