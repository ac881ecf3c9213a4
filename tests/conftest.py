"""
Pytest configuration and shared fixtures for node features tests.

Provides sample cpuinfo files and a fake udev context.
"""

import os
import pytest
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============ cpuinfo Fixtures ============

XEON_E5_FLAGS = (
    "fpu vme de pse tsc msr pae mce cx8 apic sep mtrr pge mca cmov pat pse36 "
    "clflush dts acpi mmx fxsr sse sse2 ss ht tm pbe syscall nx pdpe1gb rdtscp lm "
    "constant_tsc arch_perfmon pebs bts rep_good nopl xtopology nonstop_tsc "
    "aperfmperf eagerfpu pni pclmulqdq dtes64 monitor ds_cpl vmx smx est tm2 ssse3 "
    "sdbg fma cx16 xtpr pdcm pcid dca sse4_1 sse4_2 x2apic movbe popcnt "
    "tsc_deadline_timer aes xsave avx f16c rdrand lahf_lm abm 3dnowprefetch epb "
    "cat_l3 cdp_l3 intel_ppin intel_pt tpr_shadow vnmi flexpriority ept vpid "
    "fsgsbase tsc_adjust bmi1 hle avx2 smep bmi2 erms invpcid rtm cqm rdt_a rdseed "
    "adx smap xsaveopt cqm_llc cqm_occup_llc cqm_mbm_total cqm_mbm_local dtherm "
    "ida arat pln pts"
)

XEON_E5_CPUINFO = f"""processor\t: 0
vendor_id\t: GenuineIntel
cpu family\t: 6
model\t\t: 79
model name\t: Intel(R) Xeon(R) CPU E5-2695 v4 @ 2.10GHz
stepping\t: 1
microcode\t: 0xb000040
cpu MHz\t\t: 2100.000
cache size\t: 46080 KB
physical id\t: 0
siblings\t: 36
core id\t\t: 0
cpu cores\t: 18
fpu\t\t: yes
flags\t\t: {XEON_E5_FLAGS}
bogomips\t: 4200.00
clflush size\t: 64
address sizes\t: 46 bits physical, 48 bits virtual
power management:

processor\t: 1
vendor_id\t: AuthenticAMD
model name\t: AMD EPYC 7502 32-Core Processor
cache size\t: 512 KB
flags\t\t: fpu sse sse2 avx512f

"""

XEON_E5_FEATURES = (
    "VENDOR::GenuineIntel,MODEL::E5-2695_v4,CACHE::46080KB,"
    "ISA::sse,ISA::sse2,ISA::ssse3,ISA::sse4_1,ISA::sse4_2,ISA::avx,ISA::avx2"
)

EPYC_CPUINFO = """processor\t: 0
vendor_id\t: AuthenticAMD
cpu family\t: 23
model\t\t: 49
model name\t: AMD EPYC 7502 32-Core Processor
cache size\t: 512 KB
flags\t\t: fpu vme de pse tsc msr pae mce cx8 apic sep mtrr pge mca cmov pat \
pse36 clflush mmx fxsr sse sse2 ht syscall nx mmxext fxsr_opt pdpe1gb rdtscp lm \
constant_tsc rep_good nopl pni pclmulqdq monitor ssse3 fma cx16 sse4_1 sse4_2 \
movbe popcnt aes xsave avx f16c rdrand lahf_lm cmp_legacy svm extapic \
cr8_legacy abm sse4a misalignsse 3dnowprefetch avx2 sha_ni clzero
"""

EPYC_FEATURES = (
    "VENDOR::AuthenticAMD,MODEL::EPYC_7502,CACHE::512KB,"
    "ISA::sse,ISA::sse2,ISA::ssse3,ISA::sse4_1,ISA::sse4_2,ISA::avx,ISA::avx2"
)

CASCADE_LAKE_CPUINFO = """vendor_id\t: GenuineIntel
model name\t: Intel(R) Xeon(R) Gold 6248R CPU @ 3.00GHz
cache size\t: 36608 KB
flags\t\t: sse sse2 ssse3 sse4_1 sse4_2 avx avx2 avx512f avx512dq avx512cd \
avx512bw avx512vl avx512_vnni
"""


@pytest.fixture
def xeon_cpuinfo(tmp_path: Path) -> Path:
    """A two-record Xeon E5 cpuinfo file."""
    path = tmp_path / "cpuinfo-xeon"
    path.write_text(XEON_E5_CPUINFO)
    return path


@pytest.fixture
def epyc_cpuinfo(tmp_path: Path) -> Path:
    """An AMD EPYC cpuinfo file."""
    path = tmp_path / "cpuinfo-epyc"
    path.write_text(EPYC_CPUINFO)
    return path


@pytest.fixture
def cascade_lake_cpuinfo(tmp_path: Path) -> Path:
    """A Xeon Gold cpuinfo file with AVX-512."""
    path = tmp_path / "cpuinfo-gold"
    path.write_text(CASCADE_LAKE_CPUINFO)
    return path


# ============ udev Fixtures ============

class FakeAttributes:
    """Stands in for pyudev.Attributes."""

    def __init__(self, values):
        self._values = values

    def asstring(self, name):
        return self._values[name]


class FakeUdevDevice:
    """Stands in for pyudev.Device."""

    def __init__(self, sys_name, vendor=None, device=None, device_class=None):
        self.sys_name = sys_name
        values = {}
        if vendor is not None:
            values["vendor"] = vendor
        if device is not None:
            values["device"] = device
        if device_class is not None:
            values["class"] = device_class
        self.attributes = FakeAttributes(values)


class FakeUdevContext:
    """Stands in for pyudev.Context."""

    def __init__(self, devices=(), error=None, fail_after=None):
        self.devices = list(devices)
        self.error = error
        self.fail_after = fail_after
        self.subsystems = []

    def list_devices(self, subsystem=None, **kwargs):
        self.subsystems.append(subsystem)
        if self.error is not None and self.fail_after is None:
            raise self.error
        return self._iterate()

    def _iterate(self):
        for index, device in enumerate(self.devices):
            if self.fail_after is not None and index >= self.fail_after:
                raise self.error
            yield device


@pytest.fixture
def gpu_devices():
    """A node with two V100s, an A100, a NIC and an unknown display device."""
    return [
        FakeUdevDevice("0000:00:02.0", "0x8086", "0x3e92", "0x030000"),
        FakeUdevDevice("0000:18:00.0", "0x10de", "0x1db6", "0x030200"),
        FakeUdevDevice("0000:3b:00.0", "0x10de", "0x1db5", "0x030200"),
        FakeUdevDevice("0000:5e:00.0", "0x8086", "0x1572", "0x020000"),
        FakeUdevDevice("0000:86:00.0", "0x10de", "0x20b5", "0x030200"),
    ]


@pytest.fixture
def udev_context(gpu_devices):
    """Fake udev context listing gpu_devices."""
    return FakeUdevContext(gpu_devices)


@pytest.fixture
def no_config_file(tmp_path: Path, monkeypatch):
    """Point the default configuration at a file that does not exist."""
    monkeypatch.setenv("NODE_FEATURES_CONFIG", str(tmp_path / "absent.json"))


# ============ Marker Configuration ============

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "unit: fast unit tests with no external deps"
    )
    config.addinivalue_line(
        "markers", "hardware: tests that read this machine's /proc/cpuinfo or PCI bus"
    )


def pytest_collection_modifyitems(config, items):
    """Skip tests based on environment."""
    skip_hw = pytest.mark.skip(reason="Hardware tests disabled in CI")

    for item in items:
        if "hardware" in item.keywords and os.environ.get("CI"):
            item.add_marker(skip_hw)
