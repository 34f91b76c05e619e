import os
import yaml

class Config:
    @staticmethod
    def load(root_path="DepthForest/config_depthforest.yaml", local_path=None):
        """
        Load a YAML config file. If local_path is provided and exists, merge it over the root config.
        Local section values override root section values key by key.
        """
        if not os.path.exists(root_path):
            raise FileNotFoundError(f"Config file not found: {root_path}")
        with open(root_path, "r") as f:
            config = yaml.safe_load(f) or {}
        if local_path and os.path.exists(local_path):
            with open(local_path, "r") as f:
                local_config = yaml.safe_load(f) or {}
            for key, value in local_config.items():
                if isinstance(value, dict) and isinstance(config.get(key), dict):
                    config[key].update(value)
                else:
                    config[key] = value
        return config

    @staticmethod
    def section(config, name):
        """Return a config section as a dict, empty when the section is missing."""
        return config.get(name) or {}
