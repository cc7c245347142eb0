from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('products', '0001_initial'),
        ('tenant', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Discount',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('code', models.CharField(blank=True, help_text='Optional code for manual discounts (unique per tenant)', max_length=50, null=True)),
                ('type', models.CharField(choices=[('PERCENTAGE', 'Percentage'), ('FIXED_AMOUNT', 'Fixed Amount')], max_length=20)),
                ('scope', models.CharField(choices=[('ORDER', 'Entire Order'), ('PRODUCT', 'Specific Product'), ('SERVICE', 'Specific Service')], default='ORDER', max_length=20)),
                ('value', models.DecimalField(decimal_places=2, help_text='Percentage (e.g. 10 for 10%) or fixed amount, depending on type.', max_digits=10)),
                ('starts_at', models.DateTimeField(blank=True, help_text='The date and time when the discount becomes active.', null=True)),
                ('ends_at', models.DateTimeField(blank=True, help_text='The date and time when the discount expires.', null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(blank=True, help_text='Target product for PRODUCT scope discounts.', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='discounts', to='products.product')),
                ('service', models.ForeignKey(blank=True, help_text='Target service for SERVICE scope discounts.', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='discounts', to='products.service')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='discounts', to='tenant.tenant')),
            ],
            options={
                'ordering': ['name'],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('code__isnull', False)),
                        fields=('tenant', 'code'),
                        name='unique_discount_code_per_tenant',
                    ),
                    models.CheckConstraint(condition=models.Q(('value__gte', 0)), name='discount_value_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ServiceChargePolicy',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('type', models.CharField(choices=[('PERCENTAGE', 'Percentage'), ('FIXED_AMOUNT', 'Fixed Amount')], max_length=20)),
                ('value', models.DecimalField(decimal_places=2, max_digits=10)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='service_charge_policies', to='tenant.tenant')),
            ],
            options={
                'verbose_name_plural': 'Service charge policies',
                'ordering': ['name'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('value__gte', 0)), name='service_charge_value_non_negative'),
                ],
            },
        ),
    ]
