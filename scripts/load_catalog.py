# scripts/load_catalog.py
import json
import sys

import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.db import Base, engine
from storefront.models import Category, Product

Base.metadata.create_all(bind=engine)


def pick_id_col(df):
    for c in ["id", "product_id", "sku", "uniq_id"]:
        if c in df.columns:
            return c
    df["id"] = df.index.astype(str)
    return "id"


def present(r, col):
    return col in r.index and pd.notna(r.get(col))


def to_float(v):
    if v is None or (isinstance(v, float) and pd.isna(v)): return None
    s = str(v).replace("$", "").replace(",", "").strip()
    try: return float(s)
    except ValueError: return None


def to_bool(v):
    if v is None or (isinstance(v, float) and pd.isna(v)): return False
    return str(v).strip().lower() in {"1", "true", "yes", "y"}


def parse_list(v):
    """Accept list as-is; JSON list string -> json.loads; comma string -> split; else []"""
    if v is None or (isinstance(v, float) and pd.isna(v)): return []
    if isinstance(v, list): return v
    v = str(v).strip()
    if not v: return []
    if v.startswith("[") and v.endswith("]"):
        try: return json.loads(v)
        except json.JSONDecodeError: pass
    return [p.strip() for p in v.split(",") if p.strip()]


def parse_images(v):
    # stored as [{"type": ..., "image": url}]; the first image is the main one
    images = []
    for i, item in enumerate(parse_list(v)):
        if isinstance(item, dict) and item.get("image"):
            images.append({"type": item.get("type") or ("main" if i == 0 else "gallery"), "image": item["image"]})
        elif isinstance(item, str):
            images.append({"type": "main" if i == 0 else "gallery", "image": item})
    return images


def get_or_create_category(session: Session, cache: dict, name):
    if name is None or (isinstance(name, float) and pd.isna(name)):
        return None
    key = str(name).strip().lower()
    if not key:
        return None
    if key not in cache:
        cat = session.execute(select(Category).where(Category.name == key)).scalar_one_or_none()
        if cat is None:
            cat = Category(name=key)
            session.add(cat)
            session.flush()
        cache[key] = cat
    return cache[key]


def main(csv_path: str):
    df = pd.read_csv(csv_path)
    id_col = pick_id_col(df)
    loaded, skipped = 0, 0

    with Session(engine) as session:
        categories = {}
        for _, r in df.iterrows():
            price = to_float(r.get("price")) if "price" in df.columns else None
            name = str(r.get("name")).strip() if present(r, "name") else None
            if price is None or not name:
                skipped += 1
                continue
            offer = to_float(r.get("offer")) if "offer" in df.columns else None
            category = get_or_create_category(session, categories, r.get("category"))
            p = Product(
                id=str(r[id_col]),
                name=name,
                description=str(r.get("description")) if present(r, "description") else None,
                price=price,
                offer=offer if offer else None,
                category_id=category.id if category else None,
                is_featured=to_bool(r.get("is_featured")) if "is_featured" in df.columns else False,
                sizes=[str(s) for s in parse_list(r.get("sizes"))] if "sizes" in df.columns else [],
                images=parse_images(r.get("images")) if "images" in df.columns else [],
            )
            session.merge(p)  # upsert
            loaded += 1
        session.commit()
    print(f"✅ Catalog loaded: {loaded} products, {skipped} rows skipped.")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/load_catalog.py products.csv")
        sys.exit(1)
    main(sys.argv[1])
