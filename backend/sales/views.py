import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import NotFoundException
from backend.core.utils import create_audit_log, datatables_response, field_changes, wants_datatables
from .filters import CustomerOrderFilter
from .models import CustomerOrder
from .serializers import CustomerOrderSerializer

logger = logging.getLogger('backend.sales')

MODULE = 'Customer Orders'


def _get_order(pk):
    try:
        return CustomerOrder.objects.get(pk=pk)
    except CustomerOrder.DoesNotExist:
        raise NotFoundException('Customer order', pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_order_list_create(request):
    """DataTables paged customer orders, newest first, or create an order"""
    if request.method == 'GET':
        queryset = CustomerOrderFilter(
            request.query_params, queryset=CustomerOrder.objects.all()
        ).qs.order_by('-order_date', '-id')
        if wants_datatables(request):
            return Response(datatables_response(request, queryset, CustomerOrderSerializer))
        return Response(CustomerOrderSerializer(queryset, many=True).data)

    serializer = CustomerOrderSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    order = serializer.save()
    create_audit_log(request, 'CREATE', MODULE, entity=order.order_id,
                     details=f'Created order for {order.customer_name} ({order.total_value})')
    logger.info('Customer order created: %s', order.order_id)
    return Response(CustomerOrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_order_detail(request, pk):
    """Retrieve, update or delete a customer order"""
    order = _get_order(pk)

    if request.method == 'GET':
        return Response(CustomerOrderSerializer(order).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CustomerOrderSerializer(order, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        changes = field_changes(order, serializer.validated_data)
        order = serializer.save()
        create_audit_log(request, 'UPDATE', MODULE, entity=order.order_id,
                         details=f'Updated order for {order.customer_name}', changes=changes)
        return Response(CustomerOrderSerializer(order).data)
    else:  # DELETE
        order_id = order.order_id
        order.delete()
        create_audit_log(request, 'DELETE', MODULE, entity=order_id, details=f'Deleted order {order_id}')
        logger.info('Customer order deleted: %s', order_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_order_status_chart(request):
    return Response(CustomerOrder.objects.status_counts())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_order_summary(request):
    totals = CustomerOrder.objects.totals()
    return Response({
        'total_orders': totals['total_orders'],
        'pending': totals['pending'],
        'delivered': totals['delivered'],
        'total_revenue': totals['total_value'],
    })
