import pytest

from fsha.model.variants import CompiledShaderDataType as K, ShaderLanguage as L
from fsha.packing.errors import PlatformUnsupportedError
from fsha.platform import (
    SUPPORTED_PLATFORMS,
    GraphicsBackend,
    PlatformFlag as P,
    host_os_flag,
    parse_platform,
    resolve_backend,
    resolve_platform,
)


@pytest.mark.parametrize("platform", SUPPORTED_PLATFORMS)
def test_supported_platforms_resolve(platform):
    req = resolve_platform(platform)
    assert req.kinds
    assert req.kinds & K.ALL == req.kinds
    assert req.language


@pytest.mark.parametrize(
    "platform,backend,kinds,language",
    [
        (P.OS_WINDOWS | P.GRAPHICS_D3D, GraphicsBackend.DIRECT3D, K.DXBC | K.DXIL, L.HLSL),
        (P.OS_WINDOWS | P.GRAPHICS_VULKAN, GraphicsBackend.VULKAN, K.SPIRV, L.HLSL),
        (P.OS_LINUX | P.GRAPHICS_VULKAN, GraphicsBackend.VULKAN, K.SPIRV, L.HLSL),
        (P.OS_FREEBSD | P.GRAPHICS_VULKAN, GraphicsBackend.VULKAN, K.SPIRV, L.HLSL),
        (P.OS_MACOS | P.GRAPHICS_METAL, GraphicsBackend.METAL, K.METAL_ARCHIVE, L.METAL),
    ],
)
def test_resolution_table(platform, backend, kinds, language):
    req = resolve_platform(platform)
    assert req.backend is backend
    assert req.kinds == kinds
    assert req.language == language


def test_vulkan_wins_over_d3d():
    platform = P.OS_WINDOWS | P.GRAPHICS_D3D | P.GRAPHICS_VULKAN
    assert resolve_backend(platform) is GraphicsBackend.VULKAN


@pytest.mark.parametrize(
    "platform",
    [
        P.NONE,
        P.OS_WINDOWS,
        P.GRAPHICS_VULKAN,
        P.OS_LINUX | P.GRAPHICS_D3D,
        P.OS_MACOS | P.GRAPHICS_VULKAN,
        P.OS_OTHER | P.GRAPHICS_VULKAN,
        P.OS_WINDOWS | P.GRAPHICS_METAL,
    ],
)
def test_unrecognized_platforms_raise(platform):
    with pytest.raises(PlatformUnsupportedError) as ei:
        resolve_platform(platform)
    assert ei.value.code == "E_PLATFORM"
    assert ei.value.context["platform"] == int(platform)


def test_requirements_to_dict():
    d = resolve_platform(P.OS_WINDOWS | P.GRAPHICS_D3D).to_dict()
    assert d == {"backend": "direct3d", "kinds": ["DXBC", "DXIL"], "language": "HLSL"}


def test_parse_platform():
    assert parse_platform("windows+vulkan") == P.OS_WINDOWS | P.GRAPHICS_VULKAN
    assert parse_platform("macOS, metal") == P.OS_MACOS | P.GRAPHICS_METAL
    with pytest.raises(ValueError):
        parse_platform("amiga+vulkan")


def test_host_os_flag_is_single_os_bit():
    flag = host_os_flag()
    assert flag in (P.OS_WINDOWS, P.OS_MACOS, P.OS_LINUX, P.OS_FREEBSD, P.OS_OTHER)
