from __future__ import annotations

from models.records import ConnectivityType, SensorType
from services.deployments import (
    EnvironmentalProfile,
    Site,
    deploy_environmental_sensors,
    deploy_parking_sensors,
    deploy_traffic_sensors,
)
from services.telemetry import TelemetryService


def test_deploy_parking_sensors_registers_one_device_per_spot(service: TelemetryService) -> None:
    spots = [Site(lat=45.5, lng=-122.6, name="A-1"), Site(lat=45.51, lng=-122.61, name="A-2")]

    devices = deploy_parking_sensors(service, spots)

    assert len(devices) == 2
    assert len(service.list_devices()) == 2
    for device, spot in zip(devices, spots):
        assert device.location.address == spot.name
        assert [sensor.type for sensor in device.sensors] == [SensorType.proximity, SensorType.camera]
        assert device.sensors[0].range == (0.0, 1.0)
        assert device.connectivity.type is ConnectivityType.lora
        assert device.connectivity.protocol == "LoRaWAN"


def test_deploy_traffic_sensors_uses_cellular_pack(service: TelemetryService) -> None:
    devices = deploy_traffic_sensors(service, [Site(lat=40.0, lng=-74.0, name="5th & Main")])

    (device,) = devices
    assert [sensor.unit for sensor in device.sensors] == ["fps", "vehicles/min", "meters"]
    assert device.connectivity.type is ConnectivityType.cellular
    assert device.connectivity.strength == 85.0


def test_deploy_environmental_profiles(service: TelemetryService) -> None:
    sites = [
        (Site(lat=1.0, lng=1.0), EnvironmentalProfile.noise),
        (Site(lat=2.0, lng=2.0), EnvironmentalProfile.weather),
        (Site(lat=3.0, lng=3.0), EnvironmentalProfile.air_quality),
    ]

    noise, weather, air = deploy_environmental_sensors(service, sites)

    assert [sensor.type for sensor in noise.sensors] == [SensorType.microphone]
    assert weather.sensors[0].range == (-40.0, 60.0)
    assert air.sensors[0].range == (-20.0, 50.0)
    assert all(device.connectivity.protocol == "WiFi 6" for device in (noise, weather, air))


def test_deployed_devices_do_not_share_sensor_specs(service: TelemetryService) -> None:
    first, second = deploy_parking_sensors(
        service, [Site(lat=0.0, lng=0.0), Site(lat=0.0, lng=0.001)]
    )

    assert {sensor.id for sensor in first.sensors}.isdisjoint(
        sensor.id for sensor in second.sensors
    )
