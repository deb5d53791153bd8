"""Tests for h5container core pipeline: describe → write → read information → read regions."""

import h5py
import numpy as np
import pytest
from pydantic import ValidationError

from h5container import (
    AlreadyExistsError,
    ComponentType,
    DimensionMismatchError,
    FormatRegistry,
    HDF5ContainerImageIO,
    ImageDescriptor,
    ImageRegion,
    MalformedLayoutError,
    MetaDataDictionary,
    MetaDataValue,
    NotFoundError,
    RegionOverrides,
    UnsupportedTypeError,
    default_registry,
    register_hdf5_container,
)
from h5container.registry import HDF5_CONTAINER_FORMAT

PIXEL_TYPES = [t for t in ComponentType if t.is_pixel_type]

ROTATION = [[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]]


def make_descriptor(dimensions, components=1, component_type=ComponentType.UCHAR, **kwargs):
    return ImageDescriptor(
        dimensions=dimensions,
        number_of_components=components,
        component_type=component_type,
        **kwargs,
    )


def make_voxels(descriptor):
    shape = tuple(reversed(descriptor.dimensions))
    if descriptor.number_of_components > 1:
        shape += (descriptor.number_of_components,)
    size = int(np.prod(shape))
    return (np.arange(size) % 100).astype(descriptor.component_type.dtype).reshape(shape)


def write_image(file_name, descriptor, voxels, metadata=None, **kwargs):
    with HDF5ContainerImageIO(file_name, use_metadata=metadata is not None, **kwargs) as io:
        io.descriptor = descriptor
        if metadata is not None:
            io.metadata = metadata
        io.write(voxels)


# ── Schema Models ──────────────────────────────────────────


class TestSchemaModels:
    def test_descriptor_defaults(self):
        desc = ImageDescriptor(dimensions=[4, 3])
        assert desc.spacing == [1.0, 1.0]
        assert desc.origin == [0.0, 0.0]
        assert desc.direction == [[1.0, 0.0], [0.0, 1.0]]
        assert desc.number_of_components == 1
        assert desc.component_type is ComponentType.UCHAR
        assert desc.number_of_pixels == 12

    def test_descriptor_accepts_numpy(self):
        desc = ImageDescriptor(
            dimensions=np.array([2, 2]),
            spacing=np.array([0.5, 0.25]),
            direction=np.eye(2),
        )
        assert desc.dimensions == [2, 2]
        assert desc.spacing == [0.5, 0.25]
        np.testing.assert_array_equal(desc.direction_matrix, np.eye(2))

    def test_descriptor_length_mismatch(self):
        with pytest.raises(ValidationError, match="Spacing"):
            ImageDescriptor(dimensions=[4, 3], spacing=[1.0])
        with pytest.raises(ValidationError, match="Direction"):
            ImageDescriptor(dimensions=[4, 3], direction=np.eye(3))

    def test_largest_region(self):
        region = ImageDescriptor(dimensions=[5, 6, 7]).largest_region()
        assert region.index == [0, 0, 0]
        assert region.size == [5, 6, 7]
        assert region.dimension == 3

    def test_region_lengths_must_agree(self):
        with pytest.raises(ValidationError):
            ImageRegion(index=[0, 0], size=[1])

    def test_overrides(self):
        overrides = RegionOverrides()
        assert not overrides.active
        overrides = RegionOverrides(stride=(2, 1))
        assert overrides.active
        overrides.validate_dimension(2)
        with pytest.raises(DimensionMismatchError, match="stride"):
            overrides.validate_dimension(3)

    def test_overrides_reject_zero_stride(self):
        with pytest.raises(ValidationError):
            RegionOverrides(stride=[0, 1])


# ── Metadata Dictionary ────────────────────────────────────


class TestMetaDataDictionary:
    def test_inferred_tags(self):
        meta = MetaDataDictionary()
        meta["flag"] = True
        meta["count"] = 12
        meta["ratio"] = 0.5
        meta["name"] = "anon"
        meta["window"] = np.array([40.0, 400.0], dtype=np.float32)
        meta["echo"] = np.int16(3)

        assert meta["flag"].component is ComponentType.BOOL
        assert meta["count"].component is ComponentType.LONG
        assert meta["ratio"].component is ComponentType.DOUBLE
        assert meta["name"].component is ComponentType.STRING
        assert meta["window"].component is ComponentType.FLOAT
        assert meta["window"].is_array
        assert meta["echo"].component is ComponentType.SHORT

    def test_encapsulate_explicit_type(self):
        meta = MetaDataDictionary()
        meta.encapsulate("echo", 3, ComponentType.USHORT)
        meta.encapsulate("offsets", [1, 2, 3], ComponentType.CHAR)
        assert meta["echo"] == MetaDataValue(ComponentType.USHORT, 3)
        assert meta["offsets"].value == (1, 2, 3)
        assert meta.get_value("offsets") == (1, 2, 3)
        assert meta.get_value("missing", "default") == "default"

    def test_out_of_range_value(self):
        meta = MetaDataDictionary()
        with pytest.raises(UnsupportedTypeError):
            meta.encapsulate("x", 300, ComponentType.CHAR)
        with pytest.raises(UnsupportedTypeError):
            meta.encapsulate("y", [1, -1], ComponentType.UINT)

    def test_unsupported_value(self):
        meta = MetaDataDictionary()
        with pytest.raises(UnsupportedTypeError):
            meta["bad"] = {"nested": 1}
        with pytest.raises(UnsupportedTypeError):
            meta["strings"] = ["a", "b"]
        with pytest.raises(UnsupportedTypeError):
            meta["matrix"] = np.zeros((2, 2))

    def test_keys_must_be_strings(self):
        meta = MetaDataDictionary()
        with pytest.raises(KeyError):
            meta[""] = 1
        with pytest.raises(KeyError, match="/"):
            meta["0008/0060"] = "CT"
        with pytest.raises(KeyError):
            meta.encapsulate("a/b", 1, ComponentType.INT)

    def test_slash_free_keys_roundtrip(self, tmp_path):
        path = tmp_path / "keys.h5"
        meta = MetaDataDictionary()
        meta["0008|0060"] = "CT"
        meta["plain"] = 1
        desc = make_descriptor([2, 2])
        write_image(path, desc, make_voxels(desc), metadata=meta)

        with HDF5ContainerImageIO(path, use_metadata=True) as io:
            io.read_information()
            assert io.metadata == meta

    def test_equality_is_order_sensitive(self):
        a = MetaDataDictionary(x=1, y=2)
        b = MetaDataDictionary(y=2, x=1)
        assert a == MetaDataDictionary(x=1, y=2)
        assert a != b
        assert a.to_dict() == {"x": 1, "y": 2}


# ── Image Round Trip ───────────────────────────────────────


class TestRoundTrip:
    @pytest.mark.parametrize("components", [1, 3])
    @pytest.mark.parametrize("component_type", PIXEL_TYPES)
    def test_pixel_types(self, tmp_path, component_type, components):
        path = tmp_path / "img.h5"
        desc = make_descriptor(
            [6, 5, 4],
            components=components,
            component_type=component_type,
            spacing=[0.5, 1.0, 2.5],
            origin=[-1.0, 2.0, 3.5],
            direction=ROTATION,
        )
        voxels = make_voxels(desc)
        write_image(path, desc, voxels)

        with HDF5ContainerImageIO(path) as io:
            read_desc = io.read_information()
            out = io.read()

        assert read_desc.model_dump() == desc.model_dump()
        assert out.dtype == component_type.dtype
        np.testing.assert_array_equal(out, voxels)

    def test_two_dimensional_vector_image(self, tmp_path):
        path = tmp_path / "rgb.h5"
        desc = make_descriptor([8, 4], components=3)
        voxels = make_voxels(desc)
        write_image(path, desc, voxels)

        with h5py.File(path, "r") as f:
            assert f["data"].shape == (4, 8, 3)
            np.testing.assert_array_equal(f["data"].attrs["Dimension"], [8, 4])

        with HDF5ContainerImageIO(path) as io:
            desc = io.read_information()
            assert desc.dimensions == [8, 4]
            assert desc.number_of_components == 3

    def test_metadata(self, tmp_path):
        path = tmp_path / "meta.h5"
        meta = MetaDataDictionary()
        meta["flag"] = True
        meta.encapsulate("c", -5, ComponentType.CHAR)
        meta.encapsulate("uc", 200, ComponentType.UCHAR)
        meta.encapsulate("s", -300, ComponentType.SHORT)
        meta.encapsulate("us", 60000, ComponentType.USHORT)
        meta.encapsulate("i", -70000, ComponentType.INT)
        meta.encapsulate("ui", 4_000_000_000, ComponentType.UINT)
        meta.encapsulate("l", -(2**40), ComponentType.LONG)
        meta.encapsulate("ul", 2**40, ComponentType.ULONG)
        meta.encapsulate("ll", -(2**62), ComponentType.LONGLONG)
        meta.encapsulate("ull", 2**63 + 5, ComponentType.ULONGLONG)
        meta.encapsulate("f", 0.1, ComponentType.FLOAT)
        meta.encapsulate("d", 0.1, ComponentType.DOUBLE)
        meta["name"] = "anonymous"
        meta.encapsulate("fa", [0.1, 0.2, 0.3], ComponentType.FLOAT)
        meta.encapsulate("la", [1, -2, 3], ComponentType.LONG)
        meta.encapsulate("ba", [True, False, True], ComponentType.BOOL)

        desc = make_descriptor([3, 2])
        write_image(path, desc, make_voxels(desc), metadata=meta)

        with HDF5ContainerImageIO(path, use_metadata=True) as io:
            io.read_information()
            assert io.metadata == meta
            assert list(io.metadata) == list(meta)
            assert io.metadata["flag"].value is True
            assert io.metadata["name"].value == "anonymous"

    def test_metadata_group_skipped_without_flag(self, tmp_path):
        path = tmp_path / "nometa.h5"
        desc = make_descriptor([3, 2])
        with HDF5ContainerImageIO(path) as io:
            io.descriptor = desc
            io.metadata["ignored"] = 1
            io.write(make_voxels(desc))

        with h5py.File(path, "r") as f:
            assert "ITKMetaData" not in f

        with HDF5ContainerImageIO(path, use_metadata=True) as io:
            with pytest.raises(NotFoundError):
                io.read_information()

    def test_nested_path(self, tmp_path):
        path = tmp_path / "nested.h5"
        desc = make_descriptor([4, 4])
        voxels = make_voxels(desc)
        write_image(path, desc, voxels, path="/study/series1", dataset_name="voxels")
        write_image(path, desc, voxels + 1, path="/study/series2", dataset_name="voxels")

        with h5py.File(path, "r") as f:
            assert set(f["study"]) == {"series1", "series2"}
            assert isinstance(f["study/series1/voxels"], h5py.Dataset)

        with HDF5ContainerImageIO(path, path="/study/series2/", dataset_name="voxels") as io:
            np.testing.assert_array_equal(io.read(), voxels + 1)

    def test_read_without_information(self, tmp_path):
        path = tmp_path / "lazy.h5"
        desc = make_descriptor([5, 3], component_type=ComponentType.FLOAT)
        voxels = make_voxels(desc)
        write_image(path, desc, voxels)

        with HDF5ContainerImageIO(path) as io:
            out = io.read()
            assert io.descriptor.dimensions == [5, 3]
        np.testing.assert_array_equal(out, voxels)

    def test_read_into_buffer(self, tmp_path):
        path = tmp_path / "buffer.h5"
        desc = make_descriptor([5, 3], component_type=ComponentType.SHORT)
        voxels = make_voxels(desc)
        write_image(path, desc, voxels)

        buffer = np.empty(15, dtype=np.int16)
        with HDF5ContainerImageIO(path) as io:
            io.read_information()
            io.read(buffer)
        np.testing.assert_array_equal(buffer.reshape(3, 5), voxels)

        with HDF5ContainerImageIO(path) as io:
            io.read_information()
            with pytest.raises(DimensionMismatchError):
                io.read(np.empty(14, dtype=np.int16))

    def test_compression_and_chunking(self, tmp_path):
        path = tmp_path / "packed.h5"
        desc = make_descriptor([10, 20, 5], component_type=ComponentType.USHORT)
        voxels = make_voxels(desc)
        write_image(
            path, desc, voxels,
            use_compression=True, compression_level=12, use_chunking=True,
        )

        with h5py.File(path, "r") as f:
            ds = f["data"]
            assert ds.compression == "gzip"
            assert ds.compression_opts == HDF5ContainerImageIO.max_compression_level
            assert ds.chunks == (1, 20, 10)

        with HDF5ContainerImageIO(path) as io:
            np.testing.assert_array_equal(io.read(), voxels)


# ── Type Tags ──────────────────────────────────────────────


class TestTypeTags:
    @pytest.mark.parametrize(
        "component_type, disk_dtype, tag",
        [
            (ComponentType.LONG, np.int64, "isLong"),
            (ComponentType.ULONG, np.uint64, "isUnsignedLong"),
            (ComponentType.LONGLONG, np.int64, "isLLong"),
            (ComponentType.ULONGLONG, np.uint64, "isULLong"),
        ],
    )
    def test_pixel_dataset_tag(self, tmp_path, component_type, disk_dtype, tag):
        path = tmp_path / "tagged.h5"
        desc = make_descriptor([3, 2], component_type=component_type)
        write_image(path, desc, make_voxels(desc))

        with h5py.File(path, "r") as f:
            assert f["data"].dtype == np.dtype(disk_dtype)
            assert tag in f["data"].attrs

        with HDF5ContainerImageIO(path) as io:
            assert io.read_information().component_type is component_type

    @pytest.mark.parametrize(
        "component_type, value, disk_dtype, tag",
        [
            (ComponentType.BOOL, True, np.uint8, "isBool"),
            (ComponentType.LONG, -7, np.int64, "isLong"),
            (ComponentType.ULONG, 7, np.uint64, "isUnsignedLong"),
            (ComponentType.LONGLONG, -(2**62), np.int64, "isLLong"),
            (ComponentType.ULONGLONG, 2**64 - 1, np.uint64, "isULLong"),
        ],
    )
    def test_metadata_tag(self, tmp_path, component_type, value, disk_dtype, tag):
        path = tmp_path / "tagged_meta.h5"
        meta = MetaDataDictionary()
        meta.encapsulate("scalar", value, component_type)
        meta.encapsulate("vector", [value, value], component_type)
        desc = make_descriptor([2, 2])
        write_image(path, desc, make_voxels(desc), metadata=meta)

        with h5py.File(path, "r") as f:
            for key in ("scalar", "vector"):
                ds = f["ITKMetaData"][key]
                assert ds.dtype == np.dtype(disk_dtype)
                assert tag in ds.attrs

        with HDF5ContainerImageIO(path, use_metadata=True) as io:
            io.read_information()
            assert io.metadata["scalar"] == MetaDataValue.scalar(component_type, value)
            assert io.metadata["vector"].component is component_type
            assert io.metadata["vector"].value == (value, value)

    def test_untagged_integers_read_naively(self, tmp_path):
        path = tmp_path / "plain.h5"
        with h5py.File(path, "w") as f:
            f.create_dataset("data", data=np.zeros((2, 2), dtype=np.int64))
            group = f.create_group("ITKMetaData")
            group.create_dataset("wide", data=np.array([5], dtype=np.int64))
            group.create_dataset("unsigned", data=np.array([5, 6], dtype=np.uint64))

        with HDF5ContainerImageIO(path, use_metadata=True) as io:
            desc = io.read_information()
            assert desc.component_type is ComponentType.LONG
            assert io.metadata["wide"].component is ComponentType.LONG
            assert io.metadata["unsigned"].component is ComponentType.ULONG

    def test_tag_on_narrow_integer(self, tmp_path):
        """Files that stored a tagged long in 32 bits still decode as LONG."""
        path = tmp_path / "legacy.h5"
        with h5py.File(path, "w") as f:
            f.create_dataset("data", data=np.zeros((2, 2), dtype=np.uint8))
            group = f.create_group("ITKMetaData")
            ds = group.create_dataset("legacy_long", data=np.array([42], dtype=np.int32))
            ds.attrs["isLong"] = np.ones(1, dtype=np.bool_)
            ds = group.create_dataset("legacy_bool", data=np.array([2], dtype=np.int32))
            ds.attrs["isBool"] = np.ones(1, dtype=np.bool_)

        with HDF5ContainerImageIO(path, use_metadata=True) as io:
            io.read_information()
            assert io.metadata["legacy_long"] == MetaDataValue(ComponentType.LONG, 42)
            assert io.metadata["legacy_bool"] == MetaDataValue(ComponentType.BOOL, True)

    def test_unsupported_metadata_entries_skipped(self, tmp_path):
        path = tmp_path / "skip.h5"
        with h5py.File(path, "w") as f:
            f.create_dataset("data", data=np.zeros((2, 2), dtype=np.uint8))
            group = f.create_group("ITKMetaData")
            group.create_dataset("matrix", data=np.zeros((2, 2)))
            group.create_group("subgroup")
            group.create_dataset("half", data=np.array([1.5], dtype=np.float16))
            group.create_dataset("pair", data=np.zeros(2, dtype=[("a", "i4"), ("b", "f8")]))
            group.create_dataset("kept", data=np.array([1.5]))

        with HDF5ContainerImageIO(path, use_metadata=True) as io:
            io.read_information()
            assert list(io.metadata) == ["kept"]
            assert io.metadata["kept"] == MetaDataValue(ComponentType.DOUBLE, 1.5)

    def test_bool_pixels_rejected(self, tmp_path):
        io = HDF5ContainerImageIO(tmp_path / "bool.h5")
        io.descriptor = make_descriptor([2, 2], component_type=ComponentType.BOOL)
        with pytest.raises(UnsupportedTypeError):
            io.write(np.zeros((2, 2), dtype=np.bool_))
        io.close()

    def test_unsupported_voxel_dtype(self, tmp_path):
        path = tmp_path / "complex.h5"
        with h5py.File(path, "w") as f:
            f.create_dataset("data", data=np.zeros((2, 2), dtype=np.complex64))

        with HDF5ContainerImageIO(path) as io:
            with pytest.raises(UnsupportedTypeError):
                io.read_information()


# ── Geometry Inference ─────────────────────────────────────


class TestGeometryInference:
    def test_missing_attributes_use_defaults(self, tmp_path):
        path = tmp_path / "bare.h5"
        with h5py.File(path, "w") as f:
            f.create_dataset("data", data=np.zeros((3, 4, 5), dtype=np.int16))

        with HDF5ContainerImageIO(path) as io:
            desc = io.read_information()

        assert desc.dimensions == [5, 4, 3]
        assert desc.number_of_components == 1
        assert desc.component_type is ComponentType.SHORT
        assert desc.spacing == [1.0, 1.0, 1.0]
        assert desc.origin == [0.0, 0.0, 0.0]
        assert desc.direction == np.eye(3).tolist()

    def test_dimension_attribute_wins(self, tmp_path):
        path = tmp_path / "vector.h5"
        with h5py.File(path, "w") as f:
            ds = f.create_dataset("data", data=np.zeros((3, 4, 2), dtype=np.float32))
            ds.attrs["Dimension"] = np.array([4, 3], dtype=np.uint64)

        with HDF5ContainerImageIO(path) as io:
            desc = io.read_information()

        assert desc.dimensions == [4, 3]
        assert desc.number_of_components == 2

    def test_directions_wrong_rank(self, tmp_path):
        path = tmp_path / "bad_dir.h5"
        with h5py.File(path, "w") as f:
            ds = f.create_dataset("data", data=np.zeros((4, 5), dtype=np.uint8))
            ds.attrs["Directions"] = np.array([1.0, 0.0, 0.0, 1.0])

        with HDF5ContainerImageIO(path) as io:
            with pytest.raises(MalformedLayoutError, match="Directions"):
                io.read_information()

    def test_spacing_wrong_rank(self, tmp_path):
        path = tmp_path / "bad_spacing.h5"
        with h5py.File(path, "w") as f:
            ds = f.create_dataset("data", data=np.zeros((4, 5), dtype=np.uint8))
            ds.attrs["Spacing"] = np.ones((2, 2))

        with HDF5ContainerImageIO(path) as io:
            with pytest.raises(MalformedLayoutError):
                io.read_information()

    def test_non_symmetric_directions(self, tmp_path):
        path = tmp_path / "rotated.h5"
        desc = make_descriptor([2, 2, 2], direction=ROTATION)
        write_image(path, desc, make_voxels(desc))

        with HDF5ContainerImageIO(path) as io:
            assert io.read_information().direction == ROTATION


# ── Regions And Overrides ──────────────────────────────────


class TestRegions:
    @pytest.fixture
    def volume(self, tmp_path):
        path = tmp_path / "volume.h5"
        desc = make_descriptor([10, 20, 30], component_type=ComponentType.INT)
        voxels = np.arange(6000, dtype=np.int32).reshape(30, 20, 10)
        write_image(path, desc, voxels)
        return path, voxels

    @pytest.fixture
    def plane(self, tmp_path):
        path = tmp_path / "plane.h5"
        desc = make_descriptor([10, 8], component_type=ComponentType.FLOAT, spacing=[1.5, 1.0])
        voxels = np.arange(80, dtype=np.float32).reshape(8, 10)
        write_image(path, desc, voxels)
        return path, voxels

    def test_sub_region(self, volume):
        path, voxels = volume
        with HDF5ContainerImageIO(path) as io:
            io.read_information()
            io.io_region = ImageRegion(index=[2, 3, 4], size=[4, 5, 6])
            out = io.read()

        assert out.shape == (6, 5, 4)
        np.testing.assert_array_equal(out, voxels[4:10, 3:8, 2:6])

    def test_region_out_of_bounds(self, volume):
        path, _ = volume
        with HDF5ContainerImageIO(path) as io:
            io.read_information()
            io.io_region = ImageRegion(index=[8, 0, 0], size=[4, 1, 1])
            with pytest.raises(DimensionMismatchError):
                io.read()

    def test_streamed_write(self, tmp_path):
        path = tmp_path / "streamed.h5"
        desc = make_descriptor([10, 20], component_type=ComponentType.DOUBLE)
        voxels = np.random.default_rng(0).normal(size=(20, 10))

        with HDF5ContainerImageIO(path) as io:
            io.descriptor = desc
            io.io_region = ImageRegion(index=[0, 0], size=[10, 10])
            io.write(voxels[:10])
            io.io_region = ImageRegion(index=[0, 10], size=[10, 10])
            io.write(voxels[10:])

        with HDF5ContainerImageIO(path) as io:
            np.testing.assert_array_equal(io.read(), voxels)

    def test_write_buffer_size_mismatch(self, tmp_path):
        io = HDF5ContainerImageIO(tmp_path / "short.h5")
        io.descriptor = make_descriptor([4, 4])
        with pytest.raises(DimensionMismatchError):
            io.write(np.zeros(15, dtype=np.uint8))
        io.close()

    def test_stride_scales_spacing_and_extent(self, plane):
        path, voxels = plane
        with HDF5ContainerImageIO(path) as io:
            io.overrides = RegionOverrides(stride=[2, 1])
            desc = io.read_information()
            out = io.read()

        assert desc.dimensions == [5, 8]
        assert desc.spacing == [3.0, 1.0]
        np.testing.assert_array_equal(out, voxels[:, ::2])

    def test_stride_with_offset(self, plane):
        path, voxels = plane
        with HDF5ContainerImageIO(path) as io:
            io.overrides = RegionOverrides(offset=[1, 0], stride=[2, 1])
            desc = io.read_information()
            out = io.read()

        assert desc.dimensions == [4, 8]
        np.testing.assert_array_equal(out, voxels[:, 1:8:2])

    def test_size_override(self, plane):
        path, voxels = plane
        with HDF5ContainerImageIO(path) as io:
            io.overrides = RegionOverrides(offset=[4, 5], size=[3, 2])
            desc = io.read_information()
            out = io.read()

        assert desc.dimensions == [3, 2]
        assert desc.spacing == [1.5, 1.0]
        np.testing.assert_array_equal(out, voxels[5:7, 4:7])

    def test_override_length_mismatch_closes_file(self, plane):
        path, _ = plane
        io = HDF5ContainerImageIO(path)
        io.overrides = RegionOverrides(offset=[1])
        with pytest.raises(DimensionMismatchError):
            io.read_information()

        # would fail if a read-only handle were still open
        with h5py.File(path, "r+") as f:
            assert "data" in f


# ── Write Session ──────────────────────────────────────────


class TestWriteSession:
    def test_write_information_once_per_session(self, tmp_path):
        path = tmp_path / "once.h5"
        desc = make_descriptor([4, 3])
        meta = MetaDataDictionary(note="x")
        with HDF5ContainerImageIO(path, use_metadata=True) as io:
            io.descriptor = desc
            io.metadata = meta
            io.write_information()
            io.write_information()
            io.write(make_voxels(desc))
            io.write(make_voxels(desc))

        with h5py.File(path, "r") as f:
            assert set(f) == {"data", "ITKMetaData"}
            assert set(f["data"].attrs) == {"Origin", "Spacing", "Dimension", "Directions"}
            assert list(f["ITKMetaData"]) == ["note"]

    def test_existing_dataset_needs_overwrite(self, tmp_path):
        path = tmp_path / "exists.h5"
        desc = make_descriptor([4, 3])
        write_image(path, desc, make_voxels(desc))

        with HDF5ContainerImageIO(path) as io:
            io.descriptor = desc
            with pytest.raises(AlreadyExistsError):
                io.write(make_voxels(desc))

        bigger = make_descriptor([6, 5], component_type=ComponentType.FLOAT)
        voxels = make_voxels(bigger)
        write_image(path, bigger, voxels, overwrite=True)

        with HDF5ContainerImageIO(path) as io:
            assert io.read_information().dimensions == [6, 5]
            np.testing.assert_array_equal(io.read(), voxels)

    def test_existing_metadata_group_needs_overwrite(self, tmp_path):
        path = tmp_path / "meta_exists.h5"
        with h5py.File(path, "w") as f:
            f.create_group("ITKMetaData")

        with HDF5ContainerImageIO(path) as io:
            io.descriptor = make_descriptor([2, 2])
            with pytest.raises(AlreadyExistsError):
                io.write_information()

    def test_existing_file_reused(self, tmp_path):
        path = tmp_path / "shared.h5"
        desc = make_descriptor([2, 2])
        write_image(path, desc, make_voxels(desc), path="/a")
        write_image(path, desc, make_voxels(desc), path="/b")

        with h5py.File(path, "r") as f:
            assert set(f) == {"a", "b"}

    def test_recreate_truncates(self, tmp_path):
        path = tmp_path / "fresh.h5"
        desc = make_descriptor([2, 2])
        write_image(path, desc, make_voxels(desc), path="/a")
        write_image(path, desc, make_voxels(desc), path="/b", recreate=True)

        with h5py.File(path, "r") as f:
            assert set(f) == {"b"}

    def test_parent_directories_created(self, tmp_path):
        path = tmp_path / "deep" / "dir" / "img.h5"
        desc = make_descriptor([2, 2])
        write_image(path, desc, make_voxels(desc))
        assert path.exists()

    def test_close_starts_new_session(self, tmp_path):
        path = tmp_path / "sessions.h5"
        desc = make_descriptor([2, 2])
        io = HDF5ContainerImageIO(path)
        io.descriptor = desc
        io.write(make_voxels(desc))
        io.close()

        with pytest.raises(AlreadyExistsError):
            io.write(make_voxels(desc))
        io.overwrite = True
        io.write(make_voxels(desc) + 1)
        io.close()

        with HDF5ContainerImageIO(path) as reader:
            np.testing.assert_array_equal(reader.read(), make_voxels(desc) + 1)

    def test_missing_descriptor(self, tmp_path):
        io = HDF5ContainerImageIO(tmp_path / "nodesc.h5")
        with pytest.raises(ValueError, match="descriptor"):
            io.write_information()

    def test_descriptor_cleared_mid_session(self, tmp_path):
        desc = make_descriptor([2, 2])
        io = HDF5ContainerImageIO(tmp_path / "cleared.h5")
        io.descriptor = desc
        io.write_information()
        io.descriptor = None
        with pytest.raises(ValueError, match="descriptor"):
            io.write(make_voxels(desc))
        io.close()

    def test_repr(self, tmp_path):
        io = HDF5ContainerImageIO(tmp_path / "r.h5", path="/p", use_metadata=True)
        rep = repr(io)
        assert "r.h5" in rep
        assert "use_metadata" in rep
        assert "overwrite" not in rep


# ── File Checks ────────────────────────────────────────────


class TestFileChecks:
    def test_can_write(self):
        assert HDF5ContainerImageIO.can_write("scan.h5")
        assert HDF5ContainerImageIO.can_write("SCAN.HDF5")
        assert HDF5ContainerImageIO.can_write("/tmp/x.hd5")
        assert not HDF5ContainerImageIO.can_write("scan.nii.gz")
        assert not HDF5ContainerImageIO.can_write("")

    def test_can_read(self, tmp_path):
        valid = tmp_path / "valid.h5"
        desc = make_descriptor([2, 2])
        write_image(valid, desc, make_voxels(desc))

        text = tmp_path / "text.h5"
        text.write_text("not hdf5")

        assert HDF5ContainerImageIO.can_read(valid)
        assert not HDF5ContainerImageIO.can_read(text)
        assert not HDF5ContainerImageIO.can_read(tmp_path / "missing.h5")
        assert not HDF5ContainerImageIO.can_read(tmp_path)

    def test_dataset_exists(self, tmp_path):
        path = tmp_path / "exists.h5"
        io = HDF5ContainerImageIO(path, path="/g")
        assert not io.dataset_exists()

        desc = make_descriptor([2, 2])
        write_image(path, desc, make_voxels(desc), path="/g")
        assert io.dataset_exists()
        assert not HDF5ContainerImageIO(path, path="/g", dataset_name="other").dataset_exists()
        assert not HDF5ContainerImageIO(path, path="/missing").dataset_exists()

        garbage = tmp_path / "garbage.h5"
        garbage.write_bytes(b"\x00" * 64)
        assert not HDF5ContainerImageIO(garbage).dataset_exists()
        assert not HDF5ContainerImageIO().dataset_exists()

    def test_dataset_exists_keeps_session(self, tmp_path):
        path = tmp_path / "guard.h5"
        desc = make_descriptor([3, 2])
        voxels = make_voxels(desc)
        io = HDF5ContainerImageIO(path)
        io.descriptor = desc
        io.write_information()
        assert io.dataset_exists()
        # information already written; this must not raise AlreadyExistsError
        io.write(voxels)
        io.close()

        with HDF5ContainerImageIO(path) as reader:
            np.testing.assert_array_equal(reader.read(), voxels)

    def test_read_missing(self, tmp_path):
        with pytest.raises(NotFoundError):
            HDF5ContainerImageIO(tmp_path / "missing.h5").read_information()

        path = tmp_path / "present.h5"
        desc = make_descriptor([2, 2])
        write_image(path, desc, make_voxels(desc))
        with pytest.raises(NotFoundError):
            HDF5ContainerImageIO(path, path="/nope").read_information()
        with pytest.raises(NotFoundError):
            HDF5ContainerImageIO(path, dataset_name="nope").read_information()


# ── Format Registry ────────────────────────────────────────


class TestFormatRegistry:
    def test_register_and_create(self, tmp_path):
        registry = FormatRegistry()
        register_hdf5_container(registry)
        assert HDF5_CONTAINER_FORMAT in registry
        assert len(registry) == 1

        path = tmp_path / "reg.h5"
        desc = make_descriptor([2, 2])
        write_image(path, desc, make_voxels(desc), path="/img")

        reader = registry.create_reader(path, path="/img")
        assert isinstance(reader, HDF5ContainerImageIO)
        assert reader.read_information().dimensions == [2, 2]
        reader.close()

        writer = registry.create_writer(tmp_path / "out.hdf5", overwrite=True)
        assert isinstance(writer, HDF5ContainerImageIO)
        assert writer.overwrite

    def test_no_handler(self, tmp_path):
        registry = FormatRegistry()
        register_hdf5_container(registry)

        text = tmp_path / "notes.txt"
        text.write_text("hello")
        with pytest.raises(NotFoundError):
            registry.create_reader(text)
        with pytest.raises(NotFoundError):
            registry.create_writer(tmp_path / "image.png")

    def test_default_registration_is_idempotent(self):
        register_hdf5_container()
        count = len(default_registry)
        register_hdf5_container()
        assert len(default_registry) == count
        assert HDF5_CONTAINER_FORMAT in default_registry

    def test_unregister(self):
        registry = FormatRegistry()
        register_hdf5_container(registry)
        registry.unregister(HDF5_CONTAINER_FORMAT)
        assert HDF5_CONTAINER_FORMAT not in registry
