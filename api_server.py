import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
import uvicorn

from shopscore.config import ROLE_USER, load_settings, resolve_api_key
from shopscore.generation.client import MissingCredentialError, OpenAIGenerationClient, fetch_headline
from shopscore.models import Product
from shopscore.pipeline import BatchPipeline
from shopscore.scoring import rank_products
from shopscore.storage import LocalStore, ResultStore

settings = load_settings()
logging.basicConfig(level=settings.log_level, format="[%(asctime)s] %(levelname)s: %(message)s")

app = FastAPI()


class ProductIn(BaseModel):
    id: str
    title: str
    price: float = 0.0
    sales: float = 0.0


class ScoreRequest(BaseModel):
    products: List[ProductIn]


class GenerateRequest(BaseModel):
    product: ProductIn
    api_key: Optional[str] = None


class HeadlineRequest(BaseModel):
    site_name: str
    topic: str
    api_key: Optional[str] = None


def _client(api_key: Optional[str]) -> OpenAIGenerationClient:
    # 接口调用方按普通用户处理，只能使用自己传入的 Key
    key = resolve_api_key(ROLE_USER, api_key or "", settings)
    return OpenAIGenerationClient(api_key=key, model=settings.model, base_url=settings.base_url)


@app.post("/score")
def score(req: ScoreRequest):
    # 传入的商品即为 cohort，最大值在这批数据内计算
    products = [Product(id=p.id, title=p.title, price=p.price, sales=p.sales, gmv=p.price * p.sales)
                for p in req.products]
    return {
        "code": 0,
        "data": [
            {"id": p.id, "title": p.title, "gmv": p.gmv, "grade": s.grade, "text": s.text, "label": s.label}
            for p, s in rank_products(products)
        ]
    }


@app.post("/generate")
async def generate(req: GenerateRequest):
    p = req.product
    product = Product(id=p.id, title=p.title, price=p.price, sales=p.sales, gmv=p.price * p.sales)

    # 单次请求不落盘，使用内存存储
    pipeline = BatchPipeline(_client(req.api_key), ResultStore(LocalStore()), temperature=settings.batch_temperature)
    pipeline.open([product])
    try:
        results = await pipeline.run_batch()
    except MissingCredentialError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"code": 0, "data": results[0].to_dict()}


@app.post("/headline")
async def headline(req: HeadlineRequest):
    try:
        text = await fetch_headline(_client(req.api_key), req.site_name, req.topic, settings.news_temperature)
    except MissingCredentialError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"code": 0, "data": {"headline": text}}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
