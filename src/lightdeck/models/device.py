"""Physical and virtual device models."""

from pydantic import BaseModel, ConfigDict, Field


class PhysicalDevice(BaseModel):
    """An addressable LED controller reachable on the network.

    The address is the device id. Only the name may change after the
    device has been added.
    """

    ip_address: str = Field(description="Network address (device id)")
    name: str = Field(description="Display name")
    led_count: int = Field(ge=0, description="Number of addressable pixels")

    @property
    def id(self) -> str:
        return self.ip_address

    def renamed(self, name: str) -> "PhysicalDevice":
        """Return a copy of this device with a new name."""
        return self.model_copy(update={"name": name})


class DiscoveredDevice(BaseModel):
    """A device announced by the engine's discovery scan, not yet added."""

    ip_address: str
    name: str
    led_count: int = Field(ge=0)
    version: str | None = None

    def to_device(self) -> PhysicalDevice:
        return PhysicalDevice(ip_address=self.ip_address, name=self.name, led_count=self.led_count)


class MatrixCell(BaseModel):
    """One pixel of a virtual, pointing at a pixel on a physical device."""

    model_config = ConfigDict(frozen=True)

    device_id: str = Field(description="Address of the physical device")
    pixel: int = Field(ge=0, description="Pixel index on that device")

    def key(self) -> tuple[str, int]:
        return (self.device_id, self.pixel)


# A flat matrix row; None is an unlit gap pixel
Matrix = list[MatrixCell | None]


class VirtualDevice(BaseModel):
    """A logical LED strip composed from ranges of one or more physical devices."""

    id: str
    name: str
    matrix_data: list[Matrix] = Field(default_factory=list)
    is_device: str | None = Field(
        default=None,
        description="Address of the physical device this virtual mirrors 1:1, if any",
    )

    @property
    def matrix(self) -> Matrix:
        """The first (and in practice only) matrix row."""
        return self.matrix_data[0] if self.matrix_data else []

    @property
    def pixel_count(self) -> int:
        return sum(len(row) for row in self.matrix_data)

    def device_ids(self) -> list[str]:
        """Distinct device addresses referenced by this virtual, in first-use order."""
        if self.is_device:
            return [self.is_device]
        seen: dict[str, None] = {}
        for row in self.matrix_data:
            for cell in row:
                if cell is not None:
                    seen.setdefault(cell.device_id, None)
        return list(seen)

    @classmethod
    def mirror_of(cls, device: PhysicalDevice) -> "VirtualDevice":
        """Create the 1:1 virtual that mirrors a physical device."""
        row: Matrix = [MatrixCell(device_id=device.ip_address, pixel=i) for i in range(device.led_count)]
        return cls(id=device.ip_address, name=device.name, matrix_data=[row], is_device=device.ip_address)
