from dotenv import load_dotenv
import os

load_dotenv(override=True)

from fastapi import FastAPI, APIRouter
from fastapi.middleware.cors import CORSMiddleware
import logging

from aptdeal import __version__
from aptdeal.trade_api import router as trade_router

app = FastAPI(title="Apartment Deal API", version=__version__)

# API 라우터 생성
api_router = APIRouter(prefix="/api")

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 프로덕션에서는 특정 도메인으로 제한
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(levelname)s - %(message)s',
    force=True  # 기존 핸들러가 있어도 재설정
)


@api_router.get("/health")
def health_check():
    return {"status": "ok", "version": __version__}


api_router.include_router(trade_router)
app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8991")))
