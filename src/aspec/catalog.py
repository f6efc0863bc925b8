"""Built-in demo suppliers, influencers and paid data listings."""

from __future__ import annotations

from .events import utc_timestamp
from .subjects import InfluencerData, SupplierPriceData

SUPPLIERS: tuple[SupplierPriceData, ...] = (
    SupplierPriceData(
        supplier="GlobalTextiles Co",
        product="Cotton T-Shirts (100 units)",
        current_price=14.50,
        target_price=18.00,
        historical_prices=(16.00, 15.50, 15.00, 14.80, 14.50),
        supplier_wallet="0xSUPPLIER_TEXTILES_WALLET",
    ),
    SupplierPriceData(
        supplier="PackagePro",
        product="Eco-Friendly Mailers (500 units)",
        current_price=225.00,
        target_price=250.00,
        historical_prices=(240.00, 235.00, 230.00, 228.00, 225.00),
        supplier_wallet="0xSUPPLIER_PACKAGING_WALLET",
    ),
    SupplierPriceData(
        supplier="PrintMasters",
        product="Custom Labels (1000 units)",
        current_price=85.00,
        target_price=80.00,
        historical_prices=(82.00, 84.00, 85.00, 86.00, 85.00),
        supplier_wallet="0xSUPPLIER_PRINT_WALLET",
    ),
)

INFLUENCERS: tuple[InfluencerData, ...] = (
    InfluencerData(
        handle="creativevibes",
        platform="Instagram",
        followers=45000,
        engagement_rate=4.2,
        niche="Lifestyle/Fashion",
        requested_rate=50,
        wallet_address="0xINFLUENCER_CREATIVE_WALLET",
    ),
    InfluencerData(
        handle="techreview_mike",
        platform="YouTube",
        followers=120000,
        engagement_rate=3.8,
        niche="Tech Reviews",
        requested_rate=150,
        wallet_address="0xINFLUENCER_TECH_WALLET",
    ),
    InfluencerData(
        handle="artisan_goods",
        platform="TikTok",
        followers=28000,
        engagement_rate=6.1,
        niche="Handmade/Crafts",
        requested_rate=35,
        wallet_address="0xINFLUENCER_ARTISAN_WALLET",
    ),
)


def find_supplier(name: str) -> SupplierPriceData:
    for s in SUPPLIERS:
        if s.supplier.lower() == name.lower():
            return s
    raise KeyError(f"Unknown supplier: {name}")


def find_influencer(handle: str) -> InfluencerData:
    handle = handle.lstrip("@").lower()
    for i in INFLUENCERS:
        if i.handle.lower() == handle:
            return i
    raise KeyError(f"Unknown influencer: @{handle}")


def influencer_listing() -> dict:
    """Premium influencer listing unlocked through the resource protocol."""
    return {
        "influencers": [
            {
                "handle": i.handle,
                "platform": i.platform,
                "followers": i.followers,
                "engagementRate": i.engagement_rate,
                "niche": i.niche,
                "rate": i.requested_rate,
            }
            for i in INFLUENCERS
        ],
        "accessLevel": "premium",
        "retrievedAt": utc_timestamp(),
    }


def supplier_listing() -> dict:
    return {
        "suppliers": [
            {
                "name": "GlobalTextiles Co",
                "product": "Cotton T-Shirts (100 units)",
                "currentPrice": 14.50,
                "moq": 100,
                "leadTime": "7 days",
            },
            {
                "name": "PackagePro",
                "product": "Eco-Friendly Mailers (500 units)",
                "currentPrice": 0.45,
                "moq": 500,
                "leadTime": "3 days",
            },
        ],
        "priceUpdatedAt": utc_timestamp(),
    }
