"""
Initial migration for Agrostock models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Agrostock models: Plot, Input, Movement, Batch, Remittance, Alert."""

    initial = True

    dependencies = [
        ('contenttypes', '0002_remove_content_type_name'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Plot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.SlugField(help_text='Identificador único dentro de la firma (ej: galpon-1)', verbose_name='Código')),
                ('name', models.CharField(max_length=100, verbose_name='Nombre')),
                ('firm_id', models.PositiveIntegerField(db_index=True, verbose_name='Firma')),
                ('premise_id', models.PositiveIntegerField(blank=True, db_index=True, null=True, verbose_name='Predio')),
                ('land_use', models.CharField(choices=[('agricultural', 'Agrícola'), ('livestock', 'Ganadero'), ('mixed', 'Mixto'), ('other', 'Otro')], default='other', max_length=20, verbose_name='Uso de suelo')),
                ('is_depot', models.BooleanField(default=False, help_text='Si True, el lote almacena insumos.', verbose_name='Funciona como depósito')),
                ('pasture_height_cm', models.DecimalField(blank=True, decimal_places=1, max_digits=6, null=True, verbose_name='Altura de pastura (cm)')),
                ('target_remnant_cm', models.DecimalField(blank=True, decimal_places=1, max_digits=6, null=True, verbose_name='Remanente objetivo (cm)')),
                ('pasture_measured_at', models.DateField(blank=True, null=True, verbose_name='Última medición de pastura')),
                ('ndvi_value', models.DecimalField(blank=True, decimal_places=3, max_digits=4, null=True, verbose_name='NDVI')),
                ('ndvi_updated_at', models.DateField(blank=True, null=True, verbose_name='Fecha NDVI')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadatos')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Lote',
                'verbose_name_plural': 'Lotes',
                'ordering': ['firm_id', 'code'],
                'constraints': [
                    models.UniqueConstraint(fields=('firm_id', 'code'), name='unique_plot_code_per_firm'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Depot',
            fields=[],
            options={
                'verbose_name': 'Depósito',
                'verbose_name_plural': 'Depósitos',
                'proxy': True,
                'indexes': [],
                'constraints': [],
            },
            bases=('agrostock.plot',),
        ),
        migrations.CreateModel(
            name='Input',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Nombre')),
                ('unit', models.CharField(help_text='kg, lt, un, bolsa...', max_length=20, verbose_name='Unidad')),
                ('category', models.CharField(blank=True, default='', max_length=50, verbose_name='Categoría')),
                ('description', models.TextField(blank=True, default='', verbose_name='Descripción')),
                ('expiration_date', models.DateField(blank=True, db_index=True, null=True, verbose_name='Fecha de vencimiento')),
                ('min_stock', models.DecimalField(blank=True, decimal_places=3, help_text='Alerta cuando el stock llega a este valor. Vacío = sin alerta.', max_digits=14, null=True, verbose_name='Stock mínimo')),
                ('cost_per_unit', models.DecimalField(blank=True, decimal_places=4, max_digits=14, null=True, verbose_name='Costo unitario')),
                ('_balance', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=14, verbose_name='Stock actual')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('depot', models.ForeignKey(limit_choices_to={'is_depot': True}, on_delete=django.db.models.deletion.PROTECT, related_name='inputs', to='agrostock.plot', verbose_name='Depósito')),
            ],
            options={
                'verbose_name': 'Insumo',
                'verbose_name_plural': 'Insumos',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['depot', 'name'], name='agrostock_input_depot_name_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('depot', 'name', 'unit', 'category'), name='unique_input_identity_per_depot'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Batch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=50, verbose_name='Número de lote')),
                ('expiry_date', models.DateField(blank=True, db_index=True, help_text='Último día en que el lote puede utilizarse', null=True, verbose_name='Fecha de vencimiento')),
                ('supplier', models.CharField(blank=True, default='', max_length=200, verbose_name='Proveedor')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observaciones')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Creado')),
                ('input', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='batches', to='agrostock.input', verbose_name='Insumo')),
            ],
            options={
                'verbose_name': 'Lote de insumo',
                'verbose_name_plural': 'Lotes de insumo',
                'ordering': ['expiry_date', 'code'],
                'constraints': [
                    models.UniqueConstraint(fields=('input', 'code'), name='unique_batch_code_per_input'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Remittance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('firm_id', models.PositiveIntegerField(db_index=True, verbose_name='Firma')),
                ('document_number', models.CharField(max_length=50, verbose_name='Número de remito')),
                ('date', models.DateField(verbose_name='Fecha')),
                ('supplier_name', models.CharField(max_length=200, verbose_name='Proveedor')),
                ('supplier_tax_id', models.CharField(blank=True, default='', max_length=20, verbose_name='CUIT proveedor')),
                ('status', models.CharField(choices=[('in_transit', 'En tránsito'), ('partially_received', 'Recibido parcialmente'), ('received', 'Recibido'), ('cancelled', 'Cancelado')], db_index=True, default='in_transit', max_length=20, verbose_name='Estado')),
                ('received_by', models.CharField(blank=True, default='', max_length=150, verbose_name='Recibido por')),
                ('received_at', models.DateTimeField(blank=True, null=True, verbose_name='Fecha de recepción')),
                ('cancellation_reason', models.TextField(blank=True, default='', verbose_name='Motivo de cancelación')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='Fecha de cancelación')),
                ('purchase_order_ref', models.CharField(blank=True, default='', max_length=50, verbose_name='Orden de compra')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observaciones')),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('depot', models.ForeignKey(limit_choices_to={'is_depot': True}, on_delete=django.db.models.deletion.PROTECT, related_name='remittances', to='agrostock.plot', verbose_name='Depósito de ingreso')),
            ],
            options={
                'verbose_name': 'Remito',
                'verbose_name_plural': 'Remitos',
                'ordering': ['-date', '-pk'],
                'indexes': [
                    models.Index(fields=['firm_id', 'status'], name='agrostock_rem_firm_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'cancelled'), _negated=True), fields=('firm_id', 'document_number', 'date', 'supplier_tax_id'), name='unique_active_remittance_document'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RemittanceItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('line', models.PositiveIntegerField(default=0, verbose_name='Renglón')),
                ('description', models.CharField(max_length=200, verbose_name='Descripción')),
                ('unit', models.CharField(max_length=20, verbose_name='Unidad')),
                ('category', models.CharField(blank=True, default='', max_length=50, verbose_name='Categoría')),
                ('quantity_ordered', models.DecimalField(decimal_places=3, max_digits=14, verbose_name='Cantidad remitida')),
                ('quantity_received', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='Acumulada entre recepciones', max_digits=14, verbose_name='Cantidad recibida')),
                ('pending_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='Recibido sin insumo vinculado; se registra al vincular', max_digits=14, verbose_name='Pendiente de imputar')),
                ('batch_number', models.CharField(blank=True, default='', max_length=50, verbose_name='Número de lote')),
                ('batch_expiry_date', models.DateField(blank=True, null=True, verbose_name='Vencimiento del lote')),
                ('condition', models.CharField(choices=[('good', 'Bueno'), ('damaged', 'Dañado'), ('partial', 'Incompleto')], default='good', max_length=20, verbose_name='Estado')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observaciones')),
                ('input', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='remittance_items', to='agrostock.input', verbose_name='Insumo')),
                ('remittance', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='agrostock.remittance', verbose_name='Remito')),
            ],
            options={
                'verbose_name': 'Ítem de remito',
                'verbose_name_plural': 'Ítems de remito',
                'ordering': ['remittance', 'line', 'pk'],
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('entry', 'Ingreso'), ('exit', 'Egreso'), ('adjustment', 'Ajuste'), ('transfer', 'Transferencia')], max_length=20, verbose_name='Tipo')),
                ('quantity', models.DecimalField(decimal_places=3, help_text='Positivo = ingreso, Negativo = egreso', max_digits=14, verbose_name='Cantidad')),
                ('reference', models.CharField(help_text='Obligatoria. Ej: "Recepción remito 0001-00012345", "Aplicación potrero 4"', max_length=255, verbose_name='Referencia')),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=4, max_digits=14, null=True, verbose_name='Costo unitario')),
                ('transfer_group', models.UUIDField(blank=True, db_index=True, help_text='Compartido por los dos movimientos de una transferencia', null=True, verbose_name='Grupo de transferencia')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadatos')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Fecha/Hora')),
                ('batch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='agrostock.batch', verbose_name='Lote')),
                ('depot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='agrostock.plot', verbose_name='Depósito')),
                ('destination_depot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='incoming_transfers', to='agrostock.plot', verbose_name='Depósito destino')),
                ('input', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='agrostock.input', verbose_name='Insumo')),
                ('remittance', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='agrostock.remittance', verbose_name='Remito')),
                ('remittance_item', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='agrostock.remittanceitem', verbose_name='Ítem de remito')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name='Usuario')),
            ],
            options={
                'verbose_name': 'Movimiento',
                'verbose_name_plural': 'Movimientos',
                'ordering': ['timestamp', 'pk'],
                'indexes': [
                    models.Index(fields=['input', 'timestamp'], name='agrostock_mov_input_ts_idx'),
                    models.Index(fields=['depot', 'type'], name='agrostock_mov_depot_type_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Alert',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('firm_id', models.PositiveIntegerField(db_index=True, verbose_name='Firma')),
                ('object_id', models.PositiveIntegerField(verbose_name='ID de entidad')),
                ('rule_id', models.CharField(db_index=True, max_length=50, verbose_name='Regla')),
                ('priority', models.CharField(choices=[('high', 'Alta'), ('medium', 'Media'), ('low', 'Baja')], default='medium', max_length=10, verbose_name='Prioridad')),
                ('status', models.CharField(choices=[('pending', 'Pendiente'), ('completed', 'Completada'), ('cancelled', 'Cancelada')], db_index=True, default='pending', max_length=10, verbose_name='Estado')),
                ('origin', models.CharField(choices=[('automatic', 'Automática'), ('manual', 'Manual')], default='automatic', max_length=10, verbose_name='Origen')),
                ('title', models.CharField(max_length=200, verbose_name='Título')),
                ('description', models.TextField(blank=True, default='', verbose_name='Descripción')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadatos')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Creada')),
                ('resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='Cerrada')),
                ('content_type', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to='contenttypes.contenttype', verbose_name='Tipo de entidad')),
            ],
            options={
                'verbose_name': 'Alerta',
                'verbose_name_plural': 'Alertas',
                'ordering': ['-created_at', '-pk'],
                'indexes': [
                    models.Index(fields=['content_type', 'object_id'], name='agrostock_alert_entity_idx'),
                    models.Index(fields=['firm_id', 'status'], name='agrostock_alert_firm_st_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'pending')), fields=('content_type', 'object_id', 'rule_id'), name='unique_pending_alert_per_entity_rule'),
                ],
            },
        ),
    ]
