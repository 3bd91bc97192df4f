"""
registry.py - Supported assets and their lending configuration

=== ASSET CONFIG ===

One AssetConfig per supported asset:
    collateral_ratio    - required collateral value per unit of borrowed value (bps)
    liquidation_ratio   - collateral/debt ratio below which a loan is liquidatable (bps)
    base_apr, apr_floor - origination APR bounds before/after credit discount (bps)
    liquidation_bonus   - extra collateral share offered to liquidators (bps);
                          negative values are a fee kept by the pool
    share_token         - symbol of the bound share-token unit
    native              - amount travels as value attached to the call

Registering an asset a second time silently replaces its config and binds a
NEW share-token unit (<asset>-SHARE-<generation>). Holders of the previous
share token keep balances that no longer redeem against anything.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional

from .core import AuthorizationError, ValidationError, BPS


@dataclass(frozen=True, slots=True)
class AssetConfig:
    """
    Immutable lending configuration for one asset.

    Ratios and rates are integer basis points (10000 == 100%).
    """
    asset: str
    collateral_ratio: int
    liquidation_ratio: int
    base_apr: int
    apr_floor: int
    liquidation_bonus: int
    share_token: str
    can_be_collateral: bool
    can_be_borrowed: bool
    native: bool = False
    active: bool = True

    def __post_init__(self):
        for name in ("collateral_ratio", "liquidation_ratio", "base_apr", "apr_floor", "liquidation_bonus"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValidationError(f"{self.asset}: {name} must be an int in basis points, got {value!r}")
            # A negative bonus is a liquidation fee retained for lenders.
            if value < 0 and name != "liquidation_bonus":
                raise ValidationError(f"{self.asset}: {name} cannot be negative, got {value}")
        if self.liquidation_bonus <= -BPS:
            raise ValidationError(
                f"{self.asset}: liquidation_bonus {self.liquidation_bonus} would leave the liquidator nothing"
            )
        if self.liquidation_ratio == 0:
            raise ValidationError(f"{self.asset}: liquidation_ratio must be positive")
        if self.collateral_ratio <= self.liquidation_ratio:
            raise ValidationError(
                f"{self.asset}: collateral_ratio {self.collateral_ratio} must exceed "
                f"liquidation_ratio {self.liquidation_ratio}"
            )
        if self.apr_floor > self.base_apr:
            raise ValidationError(
                f"{self.asset}: apr_floor {self.apr_floor} exceeds base_apr {self.base_apr}"
            )


def share_symbol(asset: str, generation: int) -> str:
    """Symbol of the share-token unit bound by the given registration generation."""
    return f"{asset}-SHARE-{generation}"


class AssetRegistry:
    """
    Per-asset configuration and the ordered set of supported assets.

    Only ``admin`` may register assets. There is no disable or remove
    operation; reads are pure lookups.
    """

    def __init__(self, admin: str):
        self.admin = admin
        self._configs: Dict[str, AssetConfig] = {}
        self._supported: List[str] = []
        self._generations: Dict[str, int] = {}

    def require_admin(self, caller: str) -> None:
        if caller != self.admin:
            raise AuthorizationError(f"{caller} is not the pool admin")

    def add_asset(
        self,
        caller: str,
        asset: str,
        collateral_ratio: int,
        liquidation_ratio: int,
        base_apr: int,
        apr_floor: int,
        liquidation_bonus: int,
        can_be_collateral: bool,
        can_be_borrowed: bool,
        native: bool = False,
    ) -> AssetConfig:
        """
        Register (or re-register) an asset.

        Returns:
            The stored AssetConfig, bound to a freshly numbered share token.

        Raises:
            AuthorizationError: If caller is not the admin
            ValidationError: If the ratios are inconsistent, or a second
                             native asset is registered
        """
        self.require_admin(caller)

        native_asset = self.native_asset
        if native and native_asset is not None and native_asset != asset:
            raise ValidationError(f"{native_asset} is already the native asset")

        generation = self._generations.get(asset, 0) + 1
        config = AssetConfig(
            asset=asset,
            collateral_ratio=collateral_ratio,
            liquidation_ratio=liquidation_ratio,
            base_apr=base_apr,
            apr_floor=apr_floor,
            liquidation_bonus=liquidation_bonus,
            share_token=share_symbol(asset, generation),
            can_be_collateral=can_be_collateral,
            can_be_borrowed=can_be_borrowed,
            native=native,
        )

        self._generations[asset] = generation
        self._configs[asset] = config
        if asset not in self._supported:
            self._supported.append(asset)
        return config

    def get(self, asset: str) -> AssetConfig:
        """Return the config of a supported asset, or raise ValidationError."""
        config = self._configs.get(asset)
        if config is None:
            raise ValidationError(f"Asset {asset} is not supported")
        return config

    def get_active(self, asset: str) -> AssetConfig:
        config = self.get(asset)
        if not config.active:
            raise ValidationError(f"Asset {asset} is not active")
        return config

    def is_supported(self, asset: str) -> bool:
        return asset in self._configs

    def supported_assets(self) -> List[str]:
        """Supported assets in first-registration order."""
        return list(self._supported)

    @property
    def native_asset(self) -> Optional[str]:
        for asset in self._supported:
            if self._configs[asset].native:
                return asset
        return None
