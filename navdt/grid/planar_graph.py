"""
Undirected planar graph over points, stored as numpy structured arrays
with integer handles.  Vertices are deduplicated by coordinate, so a
Point is both a location and the key for its node.
"""
import logging
from collections import defaultdict
from functools import wraps

import numpy as np

from ..spatial import geometry
from ..utils import array_append, set_keywords


class GridException(Exception):
    pass

class Missing(GridException):
    pass

class InvalidEdge(GridException):
    pass


class Listenable(object):
    def __init__(self,*a,**k):
        super(Listenable,self).__init__(*a,**k)
        self.__post_listeners=defaultdict(list) # func_name => list of functions
        self.__pre_listeners =defaultdict(list) # ditto

    def subscribe_after(self,func_name,callback):
        if callback not in self.__post_listeners[func_name]:
            self.__post_listeners[func_name].append(callback)
    def subscribe_before(self,func_name,callback):
        if callback not in self.__pre_listeners[func_name]:
            self.__pre_listeners[func_name].append(callback)
    def unsubscribe_after(self,func_name,callback):
        if callback in self.__post_listeners[func_name]:
            self.__post_listeners[func_name].remove(callback)
    def unsubscribe_before(self,func_name,callback):
        if callback in self.__pre_listeners[func_name]:
            self.__pre_listeners[func_name].remove(callback)

    def fire_after(self,func_name,*a,**k):
        for func in self.__post_listeners[func_name]:
            func(self,func_name,*a,**k)
    def fire_before(self,func_name,*a,**k):
        for func in self.__pre_listeners[func_name]:
            func(self,func_name,*a,**k)

def listenable(f):
    @wraps(f)
    def wrapper(self,*args,**kwargs):
        func_name=f.__name__
        self.fire_before(func_name,*args,**kwargs)
        val=f(self,*args,**kwargs)
        self.fire_after(func_name,*args,return_value=val,**kwargs)
        return val
    return wrapper


class PlanarGraph(Listenable):
    # local exception types
    GridException=GridException
    Missing=Missing
    InvalidEdge=InvalidEdge

    node_dtype=[ ('x',(np.float64,2)),
                 ('deleted',np.bool_) ]
    edge_dtype=[ ('nodes',(np.int32,2)),
                 ('deleted',np.bool_) ]

    def __init__(self,**kwargs):
        super(PlanarGraph,self).__init__()
        self.init_log()
        self.nodes=np.zeros(0,self.node_dtype)
        self.edges=np.zeros(0,self.edge_dtype)
        self._node_index={} # Point => node
        self._node_points=[] # node => Point
        self._node_to_edges=None
        set_keywords(self,kwargs)

    def init_log(self):
        self.log = logging.getLogger(self.__class__.__name__)

    #-# Handle level interface

    def Nnodes_valid(self):
        return (~self.nodes['deleted']).sum()
    def Nedges_valid(self):
        return (~self.edges['deleted']).sum()

    def valid_node_iter(self):
        for n in np.nonzero(~self.nodes['deleted'])[0]:
            yield n
    def valid_edge_iter(self):
        for j in np.nonzero(~self.edges['deleted'])[0]:
            yield j

    def node_point(self,n):
        return self._node_points[n]

    def point_to_node(self,p,fail_hard=True):
        p=geometry.as_point(p)
        n=self._node_index.get(p,None)
        if n is None and fail_hard:
            raise Missing("No vertex at %s"%(p,))
        return n

    def node_to_edges(self,n):
        if self._node_to_edges is None:
            self.build_node_to_edges()
        return self._node_to_edges[n]

    def build_node_to_edges(self):
        n2e = defaultdict(list)
        for j in self.valid_edge_iter():
            for i in [0,1]:
                n2e[self.edges['nodes'][j,i]].append(j)
        self._node_to_edges = n2e

    def node_to_nodes(self,n):
        nbrs=[]
        for j in self.node_to_edges(n):
            a,b=self.edges['nodes'][j]
            nbrs.append(b if a==n else a)
        return nbrs

    def nodes_to_edge(self,n1,n2=None):
        """
        return edge index for the edge joining nodes n1,n2, or None
        n1: node index, or if n2 is None, a sequence of 2 node indices
        """
        if n2 is None:
            n1,n2=n1
        candidates2 = self.node_to_edges(n2)
        for j in self.node_to_edges(n1):
            if j in candidates2:
                return j
        return None

    @listenable
    def add_node(self,x):
        """ append a node for location x, which must not already be
        a vertex.  x may be a Point (or Point subclass), or a pair.
        """
        p=geometry.as_point(x)
        if p in self._node_index:
            raise GridException("Node already exists at %s"%(p,))
        self.nodes=array_append(self.nodes)
        n=len(self.nodes)-1
        self.nodes['x'][n]=[p[0],p[1]]
        self.nodes['deleted'][n]=False
        self._node_index[p]=n
        self._node_points.append(p)
        return n

    def add_or_find_node(self,x):
        n=self.point_to_node(x,fail_hard=False)
        if n is None:
            n=self.add_node(x)
        return n

    @listenable
    def delete_node(self,n):
        if len(self.node_to_edges(n))>0:
            raise GridException("Node %d still has edges referring to it"%n)
        del self._node_to_edges[n]
        del self._node_index[self._node_points[n]]
        self.nodes['deleted'][n]=True

    def edge_defaults(self):
        return np.zeros((),self.edge_dtype)

    @listenable
    def add_edge(self,nodes):
        """
        Create an edge between two existing nodes.  Fails if the
        edge already exists or would be a self loop.
        """
        n1,n2=nodes
        if n1==n2:
            raise InvalidEdge("Self loop on node %d"%n1)
        for n in nodes:
            if n<0 or n>=len(self.nodes) or self.nodes['deleted'][n]:
                raise Missing("Node %d does not exist"%n)
        if self.nodes_to_edge(n1,n2) is not None:
            raise GridException("Edge already exists")

        self.edges=array_append(self.edges)
        j=len(self.edges)-1
        self.edges[j]=self.edge_defaults()
        self.edges['nodes'][j]=[n1,n2]
        if self._node_to_edges is not None:
            self._node_to_edges[n1].append(j)
            self._node_to_edges[n2].append(j)
        return j

    @listenable
    def delete_edge(self,j):
        self.edges['deleted'][j] = True
        if self._node_to_edges is not None:
            n1,n2 = self.edges['nodes'][j]
            self._node_to_edges[n1].remove(j)
            self._node_to_edges[n2].remove(j)

    def delete_node_cascade(self,n):
        for j in list(self.node_to_edges(n)):
            self.delete_edge(j)
        self.delete_node(n)

    def renumber(self):
        """
        Renumber all nodes and edges to omit deleted items.  Points are
        unchanged, but any handle held outside the graph is invalid
        afterwards.  Returns dict of old=>new maps, with -1 for deleted.
        """
        node_map=self.renumber_nodes()
        edge_map=self.renumber_edges(node_map)
        return dict(node_map=node_map,edge_map=edge_map)

    def renumber_nodes(self):
        valid=~self.nodes['deleted']
        node_map=np.zeros(len(self.nodes),np.int32)-1
        node_map[valid]=np.arange(valid.sum())

        self.nodes=self.nodes[valid]
        self._node_points=[p for p,v in zip(self._node_points,valid) if v]
        self._node_index=dict( (p,n) for n,p in enumerate(self._node_points) )
        return node_map

    def renumber_edges(self,node_map):
        valid=~self.edges['deleted']
        edge_map=np.zeros(len(self.edges),np.int32)-1
        edge_map[valid]=np.arange(valid.sum())

        self.edges=self.edges[valid]
        self.edges['nodes']=node_map[self.edges['nodes']]
        self._node_to_edges=None
        return edge_map

    #-# Point level interface

    def has_vertex(self,p):
        return geometry.as_point(p) in self._node_index

    def add_vertex(self,p):
        """ add p as a vertex.  Returns True if it was new, False
        if p was already present.
        """
        if self.has_vertex(p):
            return False
        self.add_node(p)
        return True

    def connect(self,p1,p2):
        """ idempotent edge creation between two existing vertices.
        Returns the edge index.
        """
        n1=self.point_to_node(p1)
        n2=self.point_to_node(p2)
        if n1==n2:
            raise InvalidEdge("Self loop at %s"%(geometry.as_point(p1),))
        j=self.nodes_to_edge(n1,n2)
        if j is None:
            j=self.add_edge(nodes=[n1,n2])
        return j

    def add_edge_and_vertices(self,p1,p2):
        if geometry.as_point(p1)==geometry.as_point(p2):
            raise InvalidEdge("Self loop at %s"%(geometry.as_point(p1),))
        self.add_vertex(p1)
        self.add_vertex(p2)
        return self.connect(p1,p2)

    def remove_edge(self,p1,p2):
        """ remove the edge p1-p2, raising Missing if it is absent """
        n1=self.point_to_node(p1)
        n2=self.point_to_node(p2)
        j=self.nodes_to_edge(n1,n2)
        if j is None:
            raise Missing("No edge between %s and %s"%(geometry.as_point(p1),
                                                      geometry.as_point(p2)))
        self.delete_edge(j)

    def remove_vertex(self,p):
        """ remove p, which must exist and have no edges left """
        self.delete_node(self.point_to_node(p))

    def remove_vertex_safe(self,p):
        """ remove p along with any edges still attached to it """
        self.delete_node_cascade(self.point_to_node(p))

    def is_connected(self,p1,p2):
        n1=self.point_to_node(p1,fail_hard=False)
        n2=self.point_to_node(p2,fail_hard=False)
        if n1 is None or n2 is None:
            return False
        return self.nodes_to_edge(n1,n2) is not None

    def neighbors(self,p):
        n=self.point_to_node(p)
        return [self.node_point(m) for m in self.node_to_nodes(n)]

    def get_vertices(self):
        return [self.node_point(n) for n in self.valid_node_iter()]

    def edge_points(self,j):
        n1,n2=self.edges['nodes'][j]
        return (self.node_point(n1),self.node_point(n2))

    def get_edges(self):
        return [self.edge_points(j) for j in self.valid_edge_iter()]

    def num_vertices(self):
        return int(self.Nnodes_valid())
    def num_edges(self):
        return int(self.Nedges_valid())

    def edges_in_line_with(self,e):
        """ count edges with both endpoints on the infinite line through e """
        a,b=geometry.as_edge(e)
        count=0
        for j in self.valid_edge_iter():
            p1,p2=self.edge_points(j)
            if geometry.collinear(a,b,p1) and geometry.collinear(a,b,p2):
                count+=1
        return count
