# Config parsing
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, MutableMapping

import toml
import click

from .elem import DEFAULT_SHORT_LENGTH_VRS
from .util import InvalidConfigError, PathInputType, TomlConfigurable


_default_conf = \
'''
########################################################
## Decoding
########################################################

## Explicit VR elements with these VRs use a 2 byte length
## field, all others have 2 reserved bytes and a 4 byte length.

#[decode]
#short_length_vrs = [ "AE", "AS", "AT", "CS", "DA", "DS", "DT", "FL", "FD",
#                     "IS", "LO", "LT", "PN", "SH", "SL", "SS", "ST", "TM",
#                     "UI", "UL", "US" ]


########################################################
## Rendering
########################################################

## Values longer than 'max_value_length' bytes are not displayed,
## and each level of nesting is indented by 'indent' spaces.

#[render]
#max_value_length = 1024
#indent = 2
'''


CONF_PATH = os.environ.get('DCMLIST_CONFIG_PATH',
                           os.path.join(click.get_app_dir('dcmlist'),
                                        'dcmlist_conf.toml'))


def _check_keys(section: str, toml_dict: Dict[str, Any], allowed: FrozenSet[str]) -> None:
    unknown = set(toml_dict) - allowed
    if unknown:
        raise InvalidConfigError(f"Unknown keys in [{section}]: {unknown}")


@dataclass(frozen=True)
class DecodeOptions(TomlConfigurable["DecodeOptions"]):
    '''Options that control how elements are decoded'''

    short_length_vrs: FrozenSet[str] = field(default=DEFAULT_SHORT_LENGTH_VRS)
    '''VRs that use a 2 byte length field in explicit VR mode'''

    def __post_init__(self) -> None:
        for vr in self.short_length_vrs:
            if not isinstance(vr, str) or len(vr) != 2 or not vr.isupper():
                raise InvalidConfigError(f"Invalid VR in short_length_vrs: {vr!r}")
        vrs = frozenset(self.short_length_vrs)
        if 'SQ' in vrs:
            raise InvalidConfigError("Sequences can't use a 2 byte length")
        object.__setattr__(self, 'short_length_vrs', vrs)

    @classmethod
    def from_toml_dict(cls, toml_dict: Dict[str, Any]) -> "DecodeOptions":
        _check_keys('decode', toml_dict, frozenset(('short_length_vrs',)))
        vrs = toml_dict.get('short_length_vrs')
        if vrs is None:
            return cls()
        if not isinstance(vrs, list):
            raise InvalidConfigError("The 'short_length_vrs' must be a list")
        if not all(isinstance(vr, str) for vr in vrs):
            raise InvalidConfigError("The 'short_length_vrs' must be a list of strings")
        return cls(frozenset(vrs))


@dataclass(frozen=True)
class RenderOptions(TomlConfigurable["RenderOptions"]):
    '''Options that control how the listing is formatted'''

    max_value_length: int = 1024
    '''Values longer than this are replaced with a placeholder'''

    indent: int = 2
    '''Number of spaces per nesting level'''

    def __post_init__(self) -> None:
        for attr in ('max_value_length', 'indent'):
            val = getattr(self, attr)
            if isinstance(val, bool) or not isinstance(val, int) or val < 0:
                raise InvalidConfigError(f"The '{attr}' must be a non-negative integer")

    @classmethod
    def from_toml_dict(cls, toml_dict: Dict[str, Any]) -> "RenderOptions":
        _check_keys('render', toml_dict, frozenset(('max_value_length', 'indent')))
        return cls(**toml_dict)


class DcmListConfig:
    '''Capture config from a TOML file

    Missing sections just get the default options.
    '''
    def __init__(self,
                 config_path: PathInputType = CONF_PATH,
                 create_if_missing: bool = False):
        self._config_path = Path(config_path)
        if not self._config_path.exists():
            if create_if_missing:
                config_dir = self._config_path.parent
                config_dir.mkdir(parents=True, exist_ok=True)
                with self._config_path.open('w') as f:
                    f.write(_default_conf)
                conf_str = _default_conf
            else:
                raise FileNotFoundError(self._config_path)
        else:
            with self._config_path.open('r') as f:
                conf_str = f.read()

        # Read the raw TOML contents
        try:
            self._raw_conf: MutableMapping[str, Any] = toml.loads(conf_str)
        except toml.decoder.TomlDecodeError as e:
            raise InvalidConfigError(f"Error parsing {self._config_path}: {e}")
        _check_keys('top level', dict(self._raw_conf), frozenset(('decode', 'render')))
        for section in ('decode', 'render'):
            if not isinstance(self._raw_conf.get(section, {}), dict):
                raise InvalidConfigError(f"The '{section}' entry must be a table")

        self.decode_opts = DecodeOptions.from_toml_dict(self._raw_conf.get('decode', {}))
        self.render_opts = RenderOptions.from_toml_dict(self._raw_conf.get('render', {}))

    @property
    def config_path(self) -> Path:
        return self._config_path
