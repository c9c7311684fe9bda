import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import NotFoundException
from backend.core.utils import create_audit_log, datatables_response, field_changes, wants_datatables
from .filters import SupplierOrderFilter
from .models import SupplierOrder
from .serializers import SupplierOrderSerializer

logger = logging.getLogger('backend.purchasing')

MODULE = 'Supplier Orders'


def _get_order(pk):
    try:
        return SupplierOrder.objects.get(pk=pk)
    except SupplierOrder.DoesNotExist:
        raise NotFoundException('Supplier order', pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def supplier_order_list_create(request):
    """List supplier orders (DataTables paged when ``draw`` is sent) or create one"""
    if request.method == 'GET':
        queryset = SupplierOrderFilter(
            request.query_params, queryset=SupplierOrder.objects.all()
        ).qs.order_by('-order_date', '-id')
        if wants_datatables(request):
            return Response(datatables_response(request, queryset, SupplierOrderSerializer))
        return Response(SupplierOrderSerializer(queryset, many=True).data)

    serializer = SupplierOrderSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    order = serializer.save()
    create_audit_log(request, 'CREATE', MODULE, entity=order.order_id,
                     details=f'Created order with {order.supplier_name} ({order.total_value})')
    logger.info('Supplier order created: %s', order.order_id)
    return Response(SupplierOrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def supplier_order_detail(request, pk):
    """Retrieve, update or delete a supplier order"""
    order = _get_order(pk)

    if request.method == 'GET':
        return Response(SupplierOrderSerializer(order).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierOrderSerializer(order, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        changes = field_changes(order, serializer.validated_data)
        order = serializer.save()
        create_audit_log(request, 'UPDATE', MODULE, entity=order.order_id,
                         details=f'Updated order with {order.supplier_name}', changes=changes)
        return Response(SupplierOrderSerializer(order).data)
    else:  # DELETE
        order_id = order.order_id
        order.delete()
        create_audit_log(request, 'DELETE', MODULE, entity=order_id, details=f'Deleted order {order_id}')
        logger.info('Supplier order deleted: %s', order_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def supplier_order_status_chart(request):
    return Response(SupplierOrder.objects.status_counts())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def supplier_order_summary(request):
    totals = SupplierOrder.objects.totals()
    return Response({
        'total_orders': totals['total_orders'],
        'pending': totals['pending'],
        'delivered': totals['delivered'],
        'total_value': totals['total_value'],
    })
