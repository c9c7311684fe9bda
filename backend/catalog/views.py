import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import NotFoundException
from backend.core.system_config import get_low_stock_threshold
from backend.core.utils import create_audit_log, datatables_response, field_changes, wants_datatables
from .filters import ProductFilter
from .models import Product
from .serializers import ProductSerializer

logger = logging.getLogger('backend.catalog')

MODULE = 'Inventory'


def _get_product(pk):
    try:
        return Product.objects.get(pk=pk)
    except Product.DoesNotExist:
        raise NotFoundException('Product', pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List products (plain or DataTables paged) or create a product"""
    if request.method == 'GET':
        queryset = ProductFilter(request.query_params, queryset=Product.objects.all()).qs.order_by('id')
        if wants_datatables(request):
            return Response(datatables_response(request, queryset, ProductSerializer))
        return Response(ProductSerializer(queryset, many=True).data)

    serializer = ProductSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    product = serializer.save()
    create_audit_log(request, 'CREATE', MODULE, entity=product.sku,
                     details=f'Created product {product.name}')
    logger.info('Product created: %s (%s)', product.name, product.sku)
    return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product; PUT only changes the fields it sends"""
    product = _get_product(pk)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        changes = field_changes(product, serializer.validated_data)
        product = serializer.save()
        create_audit_log(request, 'UPDATE', MODULE, entity=product.sku,
                         details=f'Updated product {product.name}', changes=changes)
        return Response(ProductSerializer(product).data)
    else:  # DELETE
        name, sku = product.name, product.sku
        product.delete()
        create_audit_log(request, 'DELETE', MODULE, entity=sku, details=f'Deleted product {name}')
        logger.info('Product deleted: %s (%s)', name, sku)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_category_chart(request):
    return Response(Product.objects.category_counts())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_stock_levels_chart(request):
    return Response(Product.objects.stock_level_counts())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_summary(request):
    return Response(Product.objects.summary())


# Alerts

def _alert_row(product):
    return {
        'id': product.id,
        'name': product.name,
        'sku': product.sku,
        'category_name': product.category_name or None,
        'quantity': product.quantity,
        'price': float(product.price),
        'last_updated': product.updated_at,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def alerts(request):
    """Low stock and out of stock products, at most 20 of each"""
    threshold = get_low_stock_threshold()
    low_stock = [_alert_row(p) for p in Product.objects.alert_low_stock(threshold)]
    out_of_stock = [_alert_row(p) for p in Product.objects.alert_out_of_stock()]
    return Response({
        'low_stock_items': low_stock,
        'out_of_stock_items': out_of_stock,
        'low_stock_count': len(low_stock),
        'out_of_stock_count': len(out_of_stock),
        'total_alerts': len(low_stock) + len(out_of_stock),
        'threshold': threshold,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def alerts_count(request):
    threshold = get_low_stock_threshold()
    low = Product.objects.filter(quantity__gt=0, quantity__lte=threshold).count()
    out = Product.objects.out_of_stock().count()
    return Response({
        'low_stock_count': low,
        'out_of_stock_count': out,
        'total_alerts': low + out,
    })
