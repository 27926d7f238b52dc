"""
Bulk loaders for the entity collections of a database.

Each loader maps the output of one or more ``.show`` commands onto
``EntityName, Body`` rows whose body uses the PascalCase field names of the
models.
"""

from kustokit.models import ContinuousExport, ExternalTable, Function, MaterializedView, Table

from .base import BulkEntityLoader

# =============================================================================
# TABLES
# =============================================================================

LOAD_TABLES = (
    ".show tables details "
    "| project TableName, DocString, Folder, RetentionAndCachePolicy=bag_pack("
    "\"Retention\", strcat(toint(totimespan(parse_json(RetentionPolicy).SoftDeletePeriod)/1d), \"d\"), "
    "\"HotCache\", strcat(toint(totimespan(parse_json(CachingPolicy).DataHotSpan)/1d), \"d\")) "
    "| project EntityName = TableName, Body = bag_pack_columns(DocString, Folder, RetentionAndCachePolicy)"
)

LOAD_UPDATE_POLICIES = (
    r""".show database schema as csl script """
    r"""| parse-where DatabaseSchemaScript with '.alter table ' TableName:string ' policy update \"' Policy:string '\"' """
    r"""| project TableName, UpdatePolicies = parse_json(replace_string(Policy, '\\\"', '\"')) """
    r"""| project EntityName = TableName, Body = bag_pack_columns(UpdatePolicies)"""
)

LOAD_RESTRICTED_VIEW_ACCESS = (
    ".show database schema as csl script "
    "| parse-where DatabaseSchemaScript with \".alter tables (\" TableName:string "
    "\") policy restricted_view_access True\" "
    "| project EntityName = TableName, Body = bag_pack(\"RestrictedViewAccess\", true)"
)

LOAD_ROW_LEVEL_SECURITY = (
    r""".show database schema as csl script """
    r"""| parse-where DatabaseSchemaScript with ".alter table " TableName:string " policy row_level_security enable " Policy:string """
    r"""| project TableName, RowLevelSecurity = trim("( |\\\")*", Policy) """
    r"""| project EntityName = TableName, Body = bag_pack_columns(RowLevelSecurity)"""
)

LOAD_TABLE_COLUMNS = (
    ".show database schema as csl "
    "| project TableName, Schema "
    "| extend Columns = split(Schema, \",\") "
    "| mv-apply Columns to typeof(string) on ("
    "project ColSplit = split(Columns, \":\") "
    "| project Prop = pack(tostring(ColSplit[0]), tostring(ColSplit[1])) "
    "| summarize Columns = make_bag(Prop)) "
    "| project EntityName = TableName, Body = bag_pack_columns(Columns)"
)


class TableLoader(BulkEntityLoader):
    """Tables with their columns, docstring, folder and policies."""

    collection = "tables"
    model = Table
    queries = [
        LOAD_TABLES,
        LOAD_UPDATE_POLICIES,
        LOAD_RESTRICTED_VIEW_ACCESS,
        LOAD_ROW_LEVEL_SECURITY,
        LOAD_TABLE_COLUMNS,
    ]


# =============================================================================
# FUNCTIONS
# =============================================================================

LOAD_FUNCTIONS = (
    r""".show functions """
    r"""| extend Body = trim("[{} \r\n]*", Body) """
    r"""| extend Parameters = trim("[()]", Parameters) """
    r"""| project EntityName = Name, Body = bag_pack_columns(Parameters, Body, Folder, DocString)"""
)


class FunctionLoader(BulkEntityLoader):
    collection = "functions"
    model = Function
    queries = [LOAD_FUNCTIONS]


# =============================================================================
# MATERIALIZED VIEWS
# =============================================================================

LOAD_MATERIALIZED_VIEWS = (
    ".show materialized-views details "
    "| project EntityName = MaterializedViewName, Body = bag_pack("
    "\"DocString\", DocString, \"Folder\", Folder, \"RetentionAndCachePolicy\", bag_pack("
    "\"Retention\", strcat(toint(totimespan(parse_json(RetentionPolicy).SoftDeletePeriod)/1d), \"d\"), "
    "\"HotCache\", strcat(toint(totimespan(parse_json(CachingPolicy).DataHotSpan)/1d), \"d\")))"
)

LOAD_MATERIALIZED_VIEW_DETAILS = (
    ".show materialized-views "
    "| extend Lookback = strcat(toint(Lookback / 1d), \"d\") "
    "| extend Lookback = iff(Lookback == 'd', \"\", Lookback) "
    "| project EntityName = Name, "
    "Body = bag_pack_columns(Source = SourceTable, Query, Folder, DocString, AutoUpdateSchema, Lookback)"
)


class MaterializedViewLoader(BulkEntityLoader):
    collection = "materialized_views"
    model = MaterializedView
    queries = [LOAD_MATERIALIZED_VIEWS, LOAD_MATERIALIZED_VIEW_DETAILS]


# =============================================================================
# EXTERNAL TABLES
# =============================================================================

LOAD_EXTERNAL_TABLES = (
    ".show external tables "
    "| extend Properties = parse_json(Properties), ConnectionString = tostring(parse_json(ConnectionStrings)[0]) "
    "| project EntityName = TableName, Folder, DocString, "
    "Kind = case(tolower(TableType) == \"sql\", \"sql\", tolower(TableType) == \"delta\", \"delta\", \"storage\"), "
    "DataFormat = tolower(tostring(Properties.Format)), "
    "FileExtensions = tostring(Properties.FileExtension), "
    "IncludeHeaders = tolower(tostring(Properties.IncludeHeaders)) == \"all\", "
    "Encoding = tostring(Properties.Encoding), "
    "NamePrefix = tostring(Properties.NamePrefix), "
    "Compressed = tobool(Properties.Compressed), "
    "SqlTable = tostring(Properties.TargetEntityName), "
    "CreateIfNotExists = tobool(Properties.CreateIfNotExists), "
    "PrimaryKey = tostring(Properties.PrimaryKey), "
    "SqlDialect = tostring(Properties.SqlDialect) "
    "| project EntityName, Body = bag_pack_columns(Folder, DocString, Kind, DataFormat, FileExtensions, "
    "IncludeHeaders, Encoding, NamePrefix, Compressed, SqlTable, CreateIfNotExists, PrimaryKey, SqlDialect)"
)

LOAD_EXTERNAL_TABLE_DEFINITIONS = (
    r""".show database schema as csl script """
    r"""| where DatabaseSchemaScript contains ".create external table" or DatabaseSchemaScript contains ".create-or-alter external table" """
    r"""| parse DatabaseSchemaScript with * "pathformat = " PathFormat:string "\n" * """
    r"""| parse DatabaseSchemaScript with * "partition by " Partitions:string "\n" * """
    r"""| parse DatabaseSchemaScript with * "h@\"" ConnectionString:string "\"" * """
    r"""| parse DatabaseSchemaScript with * ".create" * "external table " Table:string " (" Columns:string ")" * """
    r"""| mv-apply S = split(Columns, ",") to typeof(string) on ("""
    r"""extend C = split(S, ':') | extend B = bag_pack(trim('\\W', tostring(C[0])), C[1]) | summarize Schema = make_bag(B)) """
    r"""| extend Partitions = trim("[\\(\\)\\r]", Partitions), PathFormat = trim("\\)", trim("\\r", trim("\\(", PathFormat))) """
    r"""| project EntityName = Table, Body = bag_pack_columns(Schema, ConnectionString, Partitions, PathFormat)"""
)


class ExternalTableLoader(BulkEntityLoader):
    collection = "external_tables"
    model = ExternalTable
    queries = [LOAD_EXTERNAL_TABLES, LOAD_EXTERNAL_TABLE_DEFINITIONS]


# =============================================================================
# CONTINUOUS EXPORTS
# =============================================================================

LOAD_CONTINUOUS_EXPORTS = (
    ".show database cslschema script "
    "| parse-where DatabaseSchemaScript with '.create-or-alter continuous-export ' EntityName:string "
    "' to table ' ExternalTable:string "
    "' with (forcedLatency=time(' ForcedLatency:timespan "
    "'), intervalBetweenRuns=time(' IntervalBetweenRuns:timespan "
    "'), sizeLimit=' SizeLimit:long "
    "', distributed=' Distributed:bool "
    "', managedIdentity=' ManagedIdentity:string "
    "') <| ' Query:string "
    "| project EntityName = trim(\" \", EntityName), Body = bag_pack("
    "'ExternalTable', ExternalTable, "
    "'ForcedLatencyInMinutes', toint(ForcedLatency / 1m), "
    "'IntervalBetweenRuns', toint(IntervalBetweenRuns / 1m), "
    "'SizeLimit', SizeLimit, "
    "'Distributed', Distributed, "
    "'ManagedIdentity', ManagedIdentity, "
    "'Query', Query)"
)


class ContinuousExportLoader(BulkEntityLoader):
    collection = "continuous_exports"
    model = ContinuousExport
    queries = [LOAD_CONTINUOUS_EXPORTS]
