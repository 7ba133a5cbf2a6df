"""
Configuration management for the Photo Frame Compositor.

This module handles loading and validation of configuration parameters
from a YAML file, optionally overridden by a resources.txt file that
points at the overlay assets and the output directory.
"""

from pathlib import Path
from typing import Dict, Any, Tuple
import yaml
import configparser
from dataclasses import dataclass, asdict

from PIL import ImageColor


OVERLAY_STYLES = ("full-bleed", "bordered")
OUTPUT_FORMATS = ("lossless", "lossy")
FRAME_FALLBACKS = ("border", "none")


@dataclass(frozen=True)
class TargetSpec:
    """Fixed output surface: dimensions plus the border inset."""
    width: int = 1080
    height: int = 1920
    padding_inset: int = 40

    def full_rect(self) -> Tuple[int, int, int, int]:
        """(x, y, width, height) of the whole surface."""
        return (0, 0, self.width, self.height)

    def inset_rect(self) -> Tuple[int, int, int, int]:
        """(x, y, width, height) of the area inside the border."""
        pad = self.padding_inset
        return (pad, pad, self.width - 2 * pad, self.height - 2 * pad)


@dataclass
class Config:
    """Configuration class for the Photo Frame Compositor."""

    # Output surface
    target_width: int = 1080
    target_height: int = 1920
    padding_inset: int = 40
    overlay_style: str = "bordered"    # or "full-bleed"

    # Export settings
    output_format: str = "lossy"       # or "lossless"
    output_quality: float = 0.9        # lossy only, 0..1
    output_dir: Path = Path("output")
    filename_prefix: str = "photo-frame"

    # Overlay assets
    frame_asset: Path = Path("assets/frame.png")
    logo_asset: Path = Path("assets/logo.png")
    asset_timeout: float = 5.0         # seconds
    frame_fallback: str = "border"     # or "none"

    # Logo box (pixels, measured from the top padding)
    logo_width: int = 360
    logo_height: int = 108
    logo_margin_top: int = 40

    # Palette
    background_color: str = "#ffffff"
    caption_color: str = "#0c8596"
    title_color: str = "#a3216e"
    gradient_start: str = "#0c8596"
    gradient_end: str = "#a3216e"

    # Text logo used when the logo asset is unavailable
    logo_caption_top: str = "It Takes a"
    logo_title: str = "Community"
    logo_caption_bottom: str = "to drive Change"

    def __post_init__(self):
        """Post-initialization validation and path conversion."""
        # Convert string paths to Path objects
        if isinstance(self.output_dir, str):
            self.output_dir = Path(self.output_dir)
        if isinstance(self.frame_asset, str):
            self.frame_asset = Path(self.frame_asset)
        if isinstance(self.logo_asset, str):
            self.logo_asset = Path(self.logo_asset)

        self.validate()

    def validate(self):
        """Validate configuration parameters."""
        if self.target_width <= 0 or self.target_height <= 0:
            raise ValueError("Target dimensions must be positive")

        if self.padding_inset < 0:
            raise ValueError("padding_inset must not be negative")
        if 2 * self.padding_inset >= min(self.target_width, self.target_height):
            raise ValueError(
                f"padding_inset {self.padding_inset} leaves no room inside "
                f"{self.target_width}x{self.target_height}"
            )

        if self.overlay_style not in OVERLAY_STYLES:
            raise ValueError(f"overlay_style must be one of {OVERLAY_STYLES}, got {self.overlay_style!r}")
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"output_format must be one of {OUTPUT_FORMATS}, got {self.output_format!r}")
        if self.frame_fallback not in FRAME_FALLBACKS:
            raise ValueError(f"frame_fallback must be one of {FRAME_FALLBACKS}, got {self.frame_fallback!r}")

        if not 0.0 <= self.output_quality <= 1.0:
            raise ValueError(f"output_quality must be within [0, 1], got {self.output_quality}")
        if self.asset_timeout <= 0:
            raise ValueError("asset_timeout must be positive")

        if self.logo_width <= 0 or self.logo_height <= 0:
            raise ValueError("Logo box dimensions must be positive")
        if self.logo_width > self.target_width:
            raise ValueError("Logo box is wider than the target surface")
        if self.logo_margin_top < 0:
            raise ValueError("logo_margin_top must not be negative")
        if self.padding_inset + self.logo_margin_top + self.logo_height > self.target_height:
            raise ValueError("Logo box does not fit below the top padding")

        for key in ("background_color", "caption_color", "title_color",
                    "gradient_start", "gradient_end"):
            try:
                ImageColor.getrgb(getattr(self, key))
            except ValueError:
                raise ValueError(f"{key} is not a valid colour: {getattr(self, key)!r}")

    def target_spec(self) -> TargetSpec:
        """Build the immutable output surface description."""
        return TargetSpec(self.target_width, self.target_height, self.padding_inset)

    def rgb(self, key: str) -> Tuple[int, int, int]:
        """Resolve a palette entry to an RGB triple."""
        return ImageColor.getrgb(getattr(self, key))[:3]

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        config_dict = asdict(self)
        for key in ("output_dir", "frame_asset", "logo_asset"):
            config_dict[key] = str(config_dict[key])
        return config_dict


def load_config(config_path: str) -> Config:
    """Load configuration from a YAML file and an optional resources.txt file."""
    config_file = Path(config_path)

    if not config_file.exists():
        default_config = Config()
        save_config(default_config, config_path)
        print(f"Created default configuration file: {config_path}")
        config_dict = {}
    else:
        with open(config_file, 'r') as f:
            config_dict = yaml.safe_load(f) or {}

    # resources.txt takes precedence over YAML
    resources_file = config_file.parent / "resources.txt"
    if resources_file.exists():
        print(f"Loading asset locations from {resources_file}")
        config_dict.update(load_resources(resources_file))

    return Config(**config_dict)


def load_resources(resources_path) -> Dict[str, Any]:
    """Read asset and output locations from a resources.txt file."""
    resources = configparser.ConfigParser()
    resources.read(resources_path)

    config_dict = {}

    if 'ASSETS' in resources:
        asset_section = resources['ASSETS']
        if 'frame' in asset_section:
            config_dict['frame_asset'] = asset_section['frame']
        if 'logo' in asset_section:
            config_dict['logo_asset'] = asset_section['logo']
        if 'timeout' in asset_section:
            config_dict['asset_timeout'] = asset_section.getfloat('timeout')

    if 'OUTPUT' in resources:
        output_section = resources['OUTPUT']
        if 'output_directory' in output_section:
            config_dict['output_dir'] = output_section['output_directory']
        if 'filename_prefix' in output_section:
            config_dict['filename_prefix'] = output_section['filename_prefix']

    return config_dict


def save_config(config: Config, config_path: str):
    """Save configuration to YAML file."""
    config_dict = config.to_dict()

    with open(config_path, 'w') as f:
        yaml.dump(config_dict, f, default_flow_style=False, indent=2)


def create_example_config() -> str:
    """Create an example configuration file."""
    example_config = """# Photo Frame Compositor Configuration

# Output surface
target_width: 1080
target_height: 1920
padding_inset: 40          # Border width in pixels
overlay_style: "bordered"  # "bordered" or "full-bleed"

# Export settings
output_format: "lossy"     # "lossy" (JPEG) or "lossless" (PNG)
output_quality: 0.9        # JPEG quality, 0..1
output_dir: "output"
filename_prefix: "photo-frame"

# Overlay assets
frame_asset: "assets/frame.png"  # Full-bleed frame graphic (RGBA)
logo_asset: "assets/logo.png"
asset_timeout: 5.0               # Seconds before falling back
frame_fallback: "border"         # "border" (gradient border) or "none"

# Logo box
logo_width: 360
logo_height: 108
logo_margin_top: 40

# Palette
background_color: "#ffffff"
caption_color: "#0c8596"
title_color: "#a3216e"
gradient_start: "#0c8596"
gradient_end: "#a3216e"

# Text logo used when the logo asset cannot be loaded
logo_caption_top: "It Takes a"
logo_title: "Community"
logo_caption_bottom: "to drive Change"
"""

    return example_config


if __name__ == "__main__":
    # Generate example config when run directly
    example = create_example_config()
    with open("config_example.yaml", "w") as f:
        f.write(example)
    print("Example configuration saved to config_example.yaml")
