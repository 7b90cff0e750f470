"""Sample handlers for a UPnP device description, used throughout the tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from xmlscope.parsers import ParserSession, ReaderConfig, ScopeHandler, xmlns

FILES_ROOT = Path(__file__).parent.joinpath("files")
DEVICE_XSD = str(FILES_ROOT.joinpath("device.xsd"))
ITEMS_XSD = str(FILES_ROOT.joinpath("items.xsd"))
REMOTE_XSD = str(FILES_ROOT.joinpath("remote.xsd"))
DESCRIPTION_XML = str(FILES_ROOT.joinpath("description.xml"))

DEVICE = xmlns.device.qname


@dataclass
class Service:
    service_type: str | None = None
    service_id: str | None = None


@dataclass
class Device:
    device_type: str | None = None
    friendly_name: str | None = None
    services: list[Service] = field(default_factory=list)
    devices: list[Device] = field(default_factory=list)


@dataclass
class Description:
    lang: str | None = None
    spec_version: tuple[int, int] | None = None
    device: Device | None = None


class ServiceHandler(ScopeHandler[Service]):
    def end_element(self, tag):
        if tag == DEVICE("serviceType"):
            self.instance.service_type = self.text
        elif tag == DEVICE("serviceId"):
            self.instance.service_id = self.text
        super().end_element(tag)


class DeviceHandler(ScopeHandler[Device]):
    def delegate(self, tag, attributes):
        if tag == DEVICE("service"):
            service = Service()
            self.instance.services.append(service)
            ServiceHandler(service, parent=self)
        elif tag == DEVICE("device"):
            device = Device()
            self.instance.devices.append(device)
            DeviceHandler(device, parent=self)

    def end_element(self, tag):
        if tag == DEVICE("deviceType"):
            self.instance.device_type = self.text
        elif tag == DEVICE("friendlyName"):
            self.instance.friendly_name = self.text
        super().end_element(tag)


class DescriptionHandler(ScopeHandler[Description]):
    def __init__(self, instance, session=None, parent=None):
        super().__init__(instance, session=session, parent=parent)
        self._major = None

    def delegate(self, tag, attributes):
        if tag == DEVICE("device"):
            self.instance.device = Device()
            DeviceHandler(self.instance.device, parent=self)

    def start_element(self, tag, attributes):
        super().start_element(tag, attributes)
        if tag == DEVICE("root"):
            self.instance.lang = attributes.get(xmlns.xml.qname("lang"))

    def end_element(self, tag):
        if tag == DEVICE("major"):
            self._major = int(self.text)
        elif tag == DEVICE("minor"):
            self.instance.spec_version = (self._major, int(self.text))
        super().end_element(tag)


def parse_description(source, config: ReaderConfig | None = None) -> Description:
    """Parse a device description with the sample handlers."""
    description = Description()
    session = ParserSession(config)
    DescriptionHandler(description, session=session)
    session.parse(source)
    return description


def device_description(friendly_name: str, service_count: int = 1) -> str:
    """Generate a small valid device description."""
    services = "".join(
        f"<service><serviceType>urn:test:service:{i}</serviceType>"
        f"<serviceId>urn:test:serviceId:{friendly_name}-{i}</serviceId></service>"
        for i in range(service_count)
    )
    service_list = f"<serviceList>{services}</serviceList>" if services else ""
    return (
        f'<root xmlns="{xmlns.device}">'
        "<specVersion><major>1</major><minor>1</minor></specVersion>"
        "<device><deviceType>urn:test:device:1</deviceType>"
        f"<friendlyName>{friendly_name}</friendlyName>"
        f"{service_list}"
        "</device></root>"
    )
