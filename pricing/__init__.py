"""
pricing 패키지 — 시술 가격 인텔리전스 코어

파이프라인:
    scraper / OCR (원시 시술명 + 가격, 범위 밖)
        └─► pricing.ingest.PriceIngestor.register_price()
                ├─ HospitalResolver.resolve()     → 병원 식별 / 자동 생성
                ├─ ProcedureResolver.resolve()    → 직접 / 정확 / 별칭 / 패키지 / 후보
                │     └─ CandidateLifecycle        → 사례 누적, 승인 조건 평가
                ├─ price_records UPSERT + 시술 가격 통계 갱신
                ├─ PriceHistoryTracker.record()   → 직전 대비 변동액 / 변동률
                └─ AlertFanoutEngine.fan_out()    → |변동률| ≥ 10% 이면 구독 병원별 알림
"""
