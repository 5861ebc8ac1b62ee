from fitting_portal.models import SizeRecommendation


def recommendation_to_dict(rec: SizeRecommendation) -> dict:
    chart = rec.size_chart
    return {
        "id": str(rec.id),
        "customerEmail": rec.customer_email,
        "productType": rec.product_type,
        "recommendedSize": rec.recommended_size,
        "confidence": rec.confidence,
        "measurementData": rec.measurement_data,
        "sizeChart": {
            "id": str(chart.id),
            "brand": chart.brand,
            "collection": chart.collection,
            "productType": chart.product_type,
        } if chart else None,
        "createdAt": rec.created_at.isoformat() if rec.created_at else None,
    }
