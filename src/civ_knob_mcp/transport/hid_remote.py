"""USB HID connection to the rotary knob remote.

Supports both ``hidapi`` (preferred) and ``pyusb`` backends. Reports are
read raw; decoding them is left to :mod:`civ_knob_mcp.remote.report`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

VENDOR_ID = 0x1189
PRODUCT_ID = 0x8890
HID_INTERFACE = 0
EP_IN = 0x81
REPORT_SIZE = 64
READ_TIMEOUT_MS = 10


@dataclass
class DeviceInfo:
    """Basic device identification from USB descriptors."""

    vendor_id: int = VENDOR_ID
    product_id: int = PRODUCT_ID
    manufacturer: str = ""
    product: str = ""


class HidRemote:
    """Manages the USB HID connection to the knob remote.

    Usage::

        remote = HidRemote()
        remote.open()
        report = remote.poll(10)
        remote.close()
    """

    def __init__(
        self,
        vendor_id: int = VENDOR_ID,
        product_id: int = PRODUCT_ID,
        interface: int = HID_INTERFACE,
    ) -> None:
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._interface = interface
        self._device = None
        self._backend: str = ""
        self._connected = False
        self._device_info = DeviceInfo(vendor_id=vendor_id, product_id=product_id)

    @property
    def is_open(self) -> bool:
        return self._connected

    @property
    def device_info(self) -> DeviceInfo:
        return self._device_info

    def open(self) -> DeviceInfo:
        """Open the remote, trying hidapi first, then pyusb.

        Raises:
            ConnectionError: If the device cannot be found or opened.
        """
        if self._connected:
            return self._device_info

        try:
            return self._open_hidapi()
        except Exception as e:
            logger.debug("hidapi backend failed: %s, trying pyusb", e)

        try:
            return self._open_pyusb()
        except Exception as e:
            raise ConnectionError(
                f"Could not connect to knob remote "
                f"({self._vendor_id:#06x}:{self._product_id:#06x}). "
                f"Ensure the device is connected and you have permissions. "
                f"Last error: {e}"
            ) from e

    def _open_hidapi(self) -> DeviceInfo:
        """Open using the hidapi library."""
        import hid

        device = hid.device()
        device.open(self._vendor_id, self._product_id)
        device.set_nonblocking(False)

        self._device = device
        self._backend = "hidapi"
        self._connected = True
        self._device_info = DeviceInfo(
            vendor_id=self._vendor_id,
            product_id=self._product_id,
            manufacturer=device.get_manufacturer_string() or "",
            product=device.get_product_string() or "",
        )

        logger.info(
            "Knob remote connected via hidapi: %s %s",
            self._device_info.manufacturer,
            self._device_info.product,
        )
        return self._device_info

    def _open_pyusb(self) -> DeviceInfo:
        """Open using pyusb + libusb."""
        import usb.core
        import usb.util

        dev = usb.core.find(idVendor=self._vendor_id, idProduct=self._product_id)
        if dev is None:
            raise ConnectionError("Device not found via pyusb")

        if dev.is_kernel_driver_active(self._interface):
            dev.detach_kernel_driver(self._interface)

        usb.util.claim_interface(dev, self._interface)

        self._device = dev
        self._backend = "pyusb"
        self._connected = True
        self._device_info = DeviceInfo(
            vendor_id=self._vendor_id,
            product_id=self._product_id,
            manufacturer=usb.util.get_string(dev, dev.iManufacturer) or "",
            product=usb.util.get_string(dev, dev.iProduct) or "",
        )

        logger.info(
            "Knob remote connected via pyusb: %s %s",
            self._device_info.manufacturer,
            self._device_info.product,
        )
        return self._device_info

    def close(self) -> None:
        """Close the USB connection."""
        if not self._connected:
            return

        try:
            if self._backend == "hidapi":
                self._device.close()
            elif self._backend == "pyusb":
                import usb.util
                usb.util.release_interface(self._device, self._interface)
        except Exception as e:
            logger.warning("Error closing knob remote: %s", e)
        finally:
            self._device = None
            self._connected = False
            logger.info("Knob remote disconnected")

    def poll(self, timeout_ms: int = READ_TIMEOUT_MS) -> bytes:
        """Read one HID report.

        Returns:
            The report bytes, or ``b""`` if nothing arrived in time.

        Raises:
            ConnectionError: If not connected, or if the read fails.
            OSError: If hidapi reports a read error, e.g. after an unplug.
        """
        if not self._connected:
            raise ConnectionError("Knob remote is not connected")

        if self._backend == "hidapi":
            data = self._device.read(REPORT_SIZE, timeout_ms)
        elif self._backend == "pyusb":
            data = self._read_pyusb(timeout_ms)
        else:
            raise RuntimeError(f"Unknown backend: {self._backend}")
        return bytes(data) if data else b""

    def _read_pyusb(self, timeout_ms: int):
        import usb.core

        try:
            return self._device.read(EP_IN, REPORT_SIZE, timeout=timeout_ms)
        except usb.core.USBTimeoutError:
            return None
        except usb.core.USBError as e:
            raise ConnectionError(f"Knob remote read failed: {e}") from e
